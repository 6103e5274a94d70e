"""Registry store errors.

Each error carries an ``ErrorKind`` so it can cross the ledger node's HTTP
boundary as ``{kind, message}`` and be rebuilt on the other side.
"""

from __future__ import annotations

from enum import Enum

NOT_AUTHORIZED = "Not authorized"


class ErrorKind(str, Enum):
    """Failure kinds of the registry store."""

    already_exists = "AlreadyExists"
    not_found = "NotFound"
    invalid_oracle = "InvalidOracle"
    address_mismatch = "AddressMismatch"
    authority_mismatch = "AuthorityMismatch"
    missing_signature = "MissingSignature"
    invalid_string = "InvalidString"
    insufficient_funds = "InsufficientFunds"
    invalid_instruction = "InvalidInstruction"

    @property
    def is_authorization(self) -> bool:
        return self in (
            ErrorKind.invalid_oracle,
            ErrorKind.authority_mismatch,
            ErrorKind.missing_signature,
        )


class RegistryError(Exception):
    """Base class for every store rejection."""

    kind: ErrorKind = ErrorKind.invalid_instruction

    def __init__(self, message: str = "") -> None:
        self.message = message or self.kind.value
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"

    @staticmethod
    def from_kind(kind: str | ErrorKind, message: str = "") -> RegistryError:
        """Rebuild the concrete error for *kind*; unknown kinds give ``RegistryError``."""
        try:
            kind = ErrorKind(kind)
        except ValueError:
            return RegistryError(f"{kind}: {message}")
        return _BY_KIND[kind](message)


class AlreadyExists(RegistryError):
    kind = ErrorKind.already_exists


class NotFound(RegistryError):
    kind = ErrorKind.not_found


class InvalidOracle(RegistryError):
    kind = ErrorKind.invalid_oracle

    def __init__(self, message: str = NOT_AUTHORIZED) -> None:
        super().__init__(message)


class AddressMismatch(RegistryError):
    kind = ErrorKind.address_mismatch


class AuthorityMismatch(RegistryError):
    kind = ErrorKind.authority_mismatch

    def __init__(self, message: str = NOT_AUTHORIZED) -> None:
        super().__init__(message)


class MissingSignature(RegistryError):
    kind = ErrorKind.missing_signature

    def __init__(self, message: str = NOT_AUTHORIZED) -> None:
        super().__init__(message)


class InvalidString(RegistryError):
    kind = ErrorKind.invalid_string


class InsufficientFunds(RegistryError):
    kind = ErrorKind.insufficient_funds


class InvalidInstruction(RegistryError):
    kind = ErrorKind.invalid_instruction


_BY_KIND: dict[ErrorKind, type[RegistryError]] = {
    cls.kind: cls
    for cls in (
        AlreadyExists,
        NotFound,
        InvalidOracle,
        AddressMismatch,
        AuthorityMismatch,
        MissingSignature,
        InvalidString,
        InsufficientFunds,
        InvalidInstruction,
    )
}
