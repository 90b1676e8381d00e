"""
CLI layer for elasticcache.

Provides a Typer application whose commands call the cache backend. This
package handles only terminal transport: argument parsing, coloured output
and exit codes.

Entry point::

    elasticcache --help
"""

from elasticcache.cli.app import app

__all__ = ["app"]
