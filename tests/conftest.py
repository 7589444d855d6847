"""
Shared test fixtures and helpers for the Sequent test suite.

The ``fixture_root`` fixture builds a throwaway module tree::

    fixture_mods/
        alpha/database/seeders/alpha_seeder.py       priority = 10
        beta/database/seeders/beta_seeder.py         @ordered(after=[Alpha])
        gamma/database/seeders/gamma_seeder.py       after = [Beta]
        gamma/database/seeders/delta_seeder.py       @ordered(before=[Beta])
        circular/database/seeders/circular_a_seeder.py   after = [CircularB]
        circular/database/seeders/circular_b_seeder.py   after = [CircularA]
"""

import os
import sys
import textwrap
from pathlib import Path
from types import SimpleNamespace

import pytest


FIXTURE_PACKAGE = "fixture_mods"
_SEEDERS = f"{FIXTURE_PACKAGE}.{{module}}.database.seeders.{{file}}.{{cls}}"

ALPHA = _SEEDERS.format(module="alpha", file="alpha_seeder", cls="AlphaSeeder")
BETA = _SEEDERS.format(module="beta", file="beta_seeder", cls="BetaSeeder")
GAMMA = _SEEDERS.format(module="gamma", file="gamma_seeder", cls="GammaSeeder")
DELTA = _SEEDERS.format(module="gamma", file="delta_seeder", cls="DeltaSeeder")
CIRCULAR_A = _SEEDERS.format(module="circular", file="circular_a_seeder", cls="CircularASeeder")
CIRCULAR_B = _SEEDERS.format(module="circular", file="circular_b_seeder", cls="CircularBSeeder")


# ============================================================================
# Module tree helpers
# ============================================================================


def write_module(root: Path, relpath: str, source: str, *, package_root: Path = None) -> Path:
    """
    Write a module below ``root`` and an ``__init__.py`` in every directory
    between ``package_root`` (default: ``root``) and the module.
    """
    path = root / relpath
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(source).lstrip())

    stop = package_root or root
    directory = path.parent
    while True:
        init = directory / "__init__.py"
        if not init.exists():
            init.write_text("")
        if directory == stop or directory == directory.parent:
            break
        directory = directory.parent

    return path


def build_fixture_tree(base: Path) -> Path:
    root = base / FIXTURE_PACKAGE

    write_module(root, "alpha/database/seeders/alpha_seeder.py", """
        class AlphaSeeder:
            priority = 10

            def run(self):
                return "alpha"
    """)

    write_module(root, "beta/database/seeders/beta_seeder.py", f"""
        from sequent import ordered


        @ordered(priority=50, after=["{ALPHA}"])
        class BetaSeeder:
            def run(self):
                return "beta"
    """)

    write_module(root, "gamma/database/seeders/gamma_seeder.py", f"""
        class GammaSeeder:
            after = ["{BETA}"]

            def run(self):
                return "gamma"
    """)

    write_module(root, "gamma/database/seeders/delta_seeder.py", f"""
        from sequent import ordered


        @ordered(before=["{BETA}"])
        class DeltaSeeder:
            def run(self):
                return "delta"
    """)

    write_module(root, "circular/database/seeders/circular_a_seeder.py", f"""
        class CircularASeeder:
            after = ["{CIRCULAR_B}"]

            def run(self):
                pass
    """)

    write_module(root, "circular/database/seeders/circular_b_seeder.py", f"""
        class CircularBSeeder:
            after = ["{CIRCULAR_A}"]

            def run(self):
                pass
    """)

    return root


def _purge_fixture_modules() -> None:
    for name in list(sys.modules):
        if name == FIXTURE_PACKAGE or name.startswith(f"{FIXTURE_PACKAGE}."):
            del sys.modules[name]


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def _isolated_fixture_modules():
    """Modules loaded by discovery must not leak between tests."""
    _purge_fixture_modules()
    yield
    _purge_fixture_modules()


@pytest.fixture(autouse=True)
def _clean_sequent_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("SEQUENT_"):
            monkeypatch.delenv(key)


@pytest.fixture
def fixture_root(tmp_path) -> Path:
    """Root directory of the seeder module tree."""
    return build_fixture_tree(tmp_path)


@pytest.fixture
def ids() -> SimpleNamespace:
    """Identities of the fixture seeders."""
    return SimpleNamespace(
        alpha=ALPHA,
        beta=BETA,
        gamma=GAMMA,
        delta=DELTA,
        circular_a=CIRCULAR_A,
        circular_b=CIRCULAR_B,
        circular=[CIRCULAR_A, CIRCULAR_B],
    )


@pytest.fixture
def make_module():
    """Writer for extra component modules, see ``write_module``."""
    return write_module
