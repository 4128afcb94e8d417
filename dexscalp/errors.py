"""
Exception hierarchy.

Every error raised while a strategy cycle runs derives from
`DexScalpError`, which lets the polling loop tell expected, non‑fatal
failures apart from programming errors while still treating both as
non‑fatal.
"""

from __future__ import annotations


class DexScalpError(Exception):
    """Base class for all errors raised by the package."""


class ConfigError(DexScalpError):
    """The configuration file is missing values or holds invalid ones."""


class FeedError(DexScalpError):
    """The price source is unreachable or returned a degenerate state."""


class InvalidQuantityError(DexScalpError):
    """A trade size is zero or negative."""


class ExecutionError(DexScalpError):
    """The execution port rejected or failed to complete a swap."""
