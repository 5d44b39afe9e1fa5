"""Exception hierarchy for the alert relay."""

from __future__ import annotations


class RelayError(Exception):
    """Base exception for all relay errors."""


class ConfigError(RelayError):
    """Settings file missing, unreadable, or incomplete."""


class DecodeError(RelayError):
    """Inbound request body is not a well-formed alert notification."""


class ValidationError(RelayError):
    """Alert notification decoded but cannot be turned into an issue."""


class DispatchError(RelayError):
    """Failed to deliver the issue request to GitLab."""
