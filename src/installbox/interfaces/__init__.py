"""Abstract interfaces for InstallBox collaborators."""
