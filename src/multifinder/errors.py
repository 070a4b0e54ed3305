"""Exceptions raised by multifinder."""
from __future__ import annotations


class MultifinderError(Exception):
    """Base class for multifinder errors."""


class SessionStateError(MultifinderError, RuntimeError):
    """Raised when a session is used outside its lifecycle contract."""


class ConfigError(MultifinderError, ValueError):
    """Raised when a rule file or setting is invalid."""
