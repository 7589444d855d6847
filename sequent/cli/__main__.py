"""Sequent CLI - Main Entry Point.

The `sequent` command resolves and runs dependency-ordered components.

Commands:
    order    - Print the execution order
    inspect  - Show discovered declarations
    graph    - Export the dependency graph as Graphviz DOT
    check    - Validate references and requirements
    run      - Execute components in order
    cache    - Manage the resolution cache
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import click

from . import __version__, __cli_name__
from .utils.colors import (
    success, error, info, warning, dim, bold,
    section, kv, step, table,
    _CHECK, _CROSS,
)
from ..config import ConfigError, ConfigLoader, SequentConfig
from ..declaration import short_name
from ..errors import DependencyCycleError, RegistryError
from ..runner import ComponentRunner, import_and_run


# ═══════════════════════════════════════════════════════════════════════════
# Custom Click help formatter
# ═══════════════════════════════════════════════════════════════════════════


class SequentGroup(click.Group):
    """Click group subclass with aligned command listing."""

    def format_commands(
        self, ctx: click.Context, formatter: click.HelpFormatter
    ) -> None:
        """Format command listing with aligned columns."""
        commands = []
        for subcommand in self.list_commands(ctx):
            cmd = self.get_command(ctx, subcommand)
            if cmd is None or cmd.hidden:
                continue
            help_text = cmd.get_short_help_str(limit=48)
            commands.append((subcommand, help_text))

        if commands:
            with formatter.section(
                click.style("Commands", fg="cyan", bold=True)
            ):
                max_len = max(len(c[0]) for c in commands) + 2
                for name, help_text in commands:
                    padded = name.ljust(max_len)
                    styled_name = click.style(padded, fg="green")
                    formatter.write(f"  {styled_name} {help_text}\n")


def _configure_logging(verbose: bool, quiet: bool) -> None:
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger("sequent").setLevel(level)


@click.group(cls=SequentGroup)
@click.version_option(version=__version__, prog_name=__cli_name__)
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
@click.option('--quiet', '-q', is_flag=True, help='Minimal output')
@click.option(
    '--config', '-c', 'config_paths', multiple=True, type=click.Path(),
    help='Config file (YAML/JSON, repeatable; default: sequent.yaml)',
)
@click.option(
    '--env-file', type=click.Path(), default=None,
    help='.env file with SEQUENT_* settings (default: .env if present)',
)
@click.pass_context
def cli(ctx, verbose: bool, quiet: bool, config_paths: Sequence[str], env_file: Optional[str]):
    """Dependency-ordered component registry.

    \b
    Quick start:
      sequent order modules/
      sequent inspect modules/
      sequent run modules/ --exclude Demo
    """
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    ctx.obj['quiet'] = quiet
    ctx.obj['config_paths'] = list(config_paths)
    ctx.obj['env_file'] = env_file
    _configure_logging(verbose, quiet)


# ============================================================================
# Helpers
# ============================================================================


def _load_config(ctx: click.Context, paths: Sequence[str] = ()) -> SequentConfig:
    """Load config, letting command-line PATHS replace the configured roots."""
    env_file = ctx.obj.get('env_file')
    if env_file is None and Path(".env").exists():
        env_file = ".env"

    try:
        config = ConfigLoader.load(
            paths=ctx.obj.get('config_paths') or None,
            env_file=env_file,
        ).to_config()
    except ConfigError as e:
        error(f"  {_CROSS} Configuration error: {e}")
        sys.exit(1)

    if paths:
        config.paths = list(paths)
        config.auto_discover = True
    elif not config.paths:
        config.paths = ["."]

    return config


def _build_runner(ctx: click.Context, paths: Sequence[str], **kwargs) -> ComponentRunner:
    config = _load_config(ctx, paths)
    try:
        return ComponentRunner.from_config(config, **kwargs)
    except RegistryError as e:
        error(e.format_error())
        sys.exit(1)


def _fail_cycle(e: DependencyCycleError) -> None:
    error(e.format_error())
    sys.exit(1)


# ============================================================================
# Commands
# ============================================================================


@cli.command('order')
@click.argument('paths', nargs=-1, type=click.Path())
@click.option('--only', multiple=True, help='Keep only matching components (repeatable)')
@click.option('--exclude', 'excludes', multiple=True, help='Drop matching components (repeatable)')
@click.option('--json', 'as_json', is_flag=True, help='Output as JSON')
@click.pass_context
def order(ctx, paths: tuple, only: tuple, excludes: tuple, as_json: bool):
    """
    Print the execution order.

    Examples:
      sequent order modules/
      sequent order modules/ --only Feature --json
    """
    runner = _build_runner(ctx, paths)

    try:
        components = runner.components_to_run(only=only, exclude=excludes)
    except DependencyCycleError as e:
        _fail_cycle(e)
        return

    if as_json:
        click.echo(json.dumps(components, indent=2))
        return

    if ctx.obj['quiet']:
        for identity in components:
            click.echo(identity)
        return

    if not components:
        warning("  No components found.")
        return

    click.echo()
    section(f"Execution order ({len(components)})")
    for i, identity in enumerate(components, 1):
        step(i, identity)


@cli.command('inspect')
@click.argument('paths', nargs=-1, type=click.Path())
@click.option('--json', 'as_json', is_flag=True, help='Output as JSON')
@click.pass_context
def inspect_components(ctx, paths: tuple, as_json: bool):
    """
    Show discovered declarations (priority, after, before).

    Examples:
      sequent inspect modules/
      sequent inspect modules/ --json
    """
    runner = _build_runner(ctx, paths)
    declarations = runner.declarations()

    if as_json:
        click.echo(json.dumps(
            {identity: decl.to_dict() for identity, decl in declarations.items()},
            indent=2,
        ))
        return

    if not declarations:
        warning("  No components found.")
        return

    rows = [
        (
            identity,
            str(decl.priority),
            ", ".join(short_name(a) for a in decl.after),
            ", ".join(short_name(b) for b in decl.before),
        )
        for identity, decl in declarations.items()
    ]

    click.echo()
    section(f"Components ({len(rows)})")
    table(["Component", "Priority", "After", "Before"], rows)
    if ctx.obj['verbose']:
        click.echo()
        kv("Roots", ", ".join(str(p) for p in runner.discovery.paths))
        kv("Pattern", f"*/{runner.discovery.directory}/*{runner.discovery.suffix}")


@cli.command('graph')
@click.argument('paths', nargs=-1, type=click.Path())
@click.pass_context
def graph(ctx, paths: tuple):
    """
    Export the dependency graph as Graphviz DOT.

    Examples:
      sequent graph modules/ > order.dot
      sequent graph modules/ | dot -Tsvg -o order.svg
    """
    from ..graph import DependencyGraph

    runner = _build_runner(ctx, paths)
    click.echo(DependencyGraph(runner.declarations()).to_dot())


@cli.command('check')
@click.argument('paths', nargs=-1, type=click.Path())
@click.option('--strict', is_flag=True, help='Exit with status 1 on errors')
@click.option('--json', 'as_json', is_flag=True, help='Output as JSON')
@click.pass_context
def check(ctx, paths: tuple, strict: bool, as_json: bool):
    """
    Validate references, requirements and ordering.

    Unknown after/before targets are warnings. Missing required
    components, version mismatches and cycles are errors.

    Examples:
      sequent check modules/
      sequent check modules/ --strict
    """
    from ..graph import resolve_order
    from ..validation import DependencyValidator

    runner = _build_runner(ctx, paths)
    declarations = runner.declarations()

    validator = DependencyValidator.from_components(declarations, runner.components())
    report = validator.report()

    try:
        resolve_order(declarations)
    except DependencyCycleError as e:
        report.add_error(e)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2, default=str))
    elif not ctx.obj['quiet'] or report.has_errors():
        click.echo()
        if report.has_errors():
            error(f"  {_CROSS} Check failed")
        else:
            success(f"  {_CHECK} Check passed")
            kv("Components", str(len(declarations)))
        click.echo()
        click.echo(report.format_report())

    if strict and report.has_errors():
        sys.exit(1)


@cli.command('run')
@click.argument('paths', nargs=-1, type=click.Path())
@click.option('--only', multiple=True, help='Run only matching components (repeatable)')
@click.option('--exclude', 'excludes', multiple=True, help='Skip matching components (repeatable)')
@click.pass_context
def run(ctx, paths: tuple, only: tuple, excludes: tuple):
    """
    Execute components in resolved order.

    Each component class is instantiated and its run() method called.

    Examples:
      sequent run modules/
      sequent run modules/ --only FeatureSeeder
      sequent run modules/ --exclude Demo
    """
    quiet = ctx.obj['quiet']
    started: list = []

    def executor(identity: str):
        started.append(identity)
        if not quiet:
            info(f"  Running: {short_name(identity)}")
        return import_and_run(identity)

    runner = _build_runner(ctx, paths, executor=executor)

    try:
        components = runner.components_to_run(only=only, exclude=excludes)
    except DependencyCycleError as e:
        _fail_cycle(e)
        return

    if not components:
        if not quiet:
            warning("  No components found to run.")
        return

    if not quiet:
        click.echo()
        info(f"  Running {len(components)} components...")
        click.echo()

    try:
        runner.execute(components)
    except Exception as e:
        error(f"  {_CROSS} {short_name(started[-1])} failed: {e}")
        sys.exit(1)

    if not quiet:
        click.echo()
        success(f"  {_CHECK} {len(components)} component(s) completed")


# ============================================================================
# Cache commands
# ============================================================================


@cli.group('cache', cls=SequentGroup)
def cache():
    """Manage the resolution cache."""
    pass


@cache.command('clear')
@click.pass_context
def cache_clear(ctx):
    """
    Invalidate the cached execution order.

    Examples:
      sequent cache clear
      sequent -c sequent.yaml cache clear
    """
    from ..cache.service import create_cache

    config = _load_config(ctx)

    if not config.cache.enabled:
        warning("  Cache is disabled (cache.enabled = false), nothing to clear.")
        return

    try:
        resolution_cache = create_cache(config.cache)
    except RegistryError as e:
        error(e.format_error())
        sys.exit(1)

    removed = resolution_cache.invalidate(config.cache.key)

    if not ctx.obj['quiet']:
        if removed:
            success(f"  {_CHECK} Cleared {bold(config.cache.key)}")
        else:
            dim(f"  No cached order under '{config.cache.key}'")
        kv("Backend", resolution_cache.backend.name)


def main():
    """Entry point for `sequent` command."""
    cli(obj={})


if __name__ == '__main__':
    main()
