#!/usr/bin/env python3
"""
InstallBox CLI package.
"""

from .parsers import build_parser, main
from .utils import console, custom_style

__all__ = ["build_parser", "main", "console", "custom_style"]
