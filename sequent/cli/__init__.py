"""
Sequent command-line interface.

Usage:
    sequent order [PATHS]...
    sequent inspect [PATHS]...
    sequent graph [PATHS]...
    sequent check [PATHS]...
    sequent run [PATHS]...
    sequent cache clear
"""

from .. import __version__

__cli_name__ = "sequent"
