"""zotu: a library-backed music player core with a command-line front end."""

from __future__ import annotations

from zotu.version import __version__

__all__ = ["__version__"]
