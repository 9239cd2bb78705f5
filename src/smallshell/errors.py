"""Application-level exception types for smallshell."""

from __future__ import annotations


class SmallShellError(Exception):
    """Base exception for smallshell."""


class ConfigurationError(SmallShellError):
    """Raised when configuration values are invalid."""


class SpawnError(SmallShellError):
    """Raised when the OS cannot create a new child process."""
