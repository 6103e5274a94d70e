"""Errors shared across the oracle, client and configuration layers."""

from __future__ import annotations


class TransportError(Exception):
    """A network call failed before a definitive answer came back.

    Terminal for the call that raised it; callers decide whether to retry.
    """


class ConfigError(Exception):
    """Required configuration is missing or malformed."""


class LedgerStateError(Exception):
    """The ledger answered, but with account state the caller cannot use."""
