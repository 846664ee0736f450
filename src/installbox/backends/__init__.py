"""Concrete implementations of the InstallBox interfaces."""
