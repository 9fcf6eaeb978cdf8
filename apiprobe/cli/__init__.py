"""CLI module for apiprobe.

Provides the ``apiprobe`` command for running discovery against a browser
tab from the command line.
"""

from .main import ExitCode, app

__all__ = [
    'ExitCode',
    'app',
]
