"""Administrative command line tools."""

from .main import main, build_parser

__all__ = ["main", "build_parser"]
