"""Registry requests and signed transactions.

Each request type names the signer roles it requires. A ``Transaction``
wraps one request with the signatures collected over its message; the store
checks every required role before it touches any state.

``RegisterAuthor`` needs two signers: the authority, who pays for and will
control the record, and the oracle, whose signature attests that the
authority proved ownership of the external identity.
"""

from __future__ import annotations

import base64
import binascii
import json
import secrets
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

import base58

from chainreg.crypto.keys import Keypair, Pubkey
from chainreg.registry.errors import InvalidInstruction


class SignerRole(str, Enum):
    authority = "authority"
    oracle = "oracle"


@dataclass(frozen=True)
class RegisterAuthor:
    """Create the Author Record for *name*, attested by the oracle."""

    KIND = "register_author"

    address: Pubkey
    bump: int
    name: str
    authority: Pubkey
    oracle: Pubkey

    def required_signers(self) -> dict[SignerRole, Pubkey]:
        return {SignerRole.authority: self.authority, SignerRole.oracle: self.oracle}

    def args(self) -> dict[str, Any]:
        return {
            "address": str(self.address),
            "bump": self.bump,
            "name": self.name,
            "authority": str(self.authority),
            "oracle": str(self.oracle),
        }

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> RegisterAuthor:
        return cls(
            address=Pubkey.from_string(args["address"]),
            bump=int(args["bump"]),
            name=str(args["name"]),
            authority=Pubkey.from_string(args["authority"]),
            oracle=Pubkey.from_string(args["oracle"]),
        )


@dataclass(frozen=True)
class UnregisterAuthor:
    """Close the Author Record at *address*, refunding its authority."""

    KIND = "unregister_author"

    address: Pubkey
    authority: Pubkey

    def required_signers(self) -> dict[SignerRole, Pubkey]:
        return {SignerRole.authority: self.authority}

    def args(self) -> dict[str, Any]:
        return {"address": str(self.address), "authority": str(self.authority)}

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> UnregisterAuthor:
        return cls(
            address=Pubkey.from_string(args["address"]),
            authority=Pubkey.from_string(args["authority"]),
        )


@dataclass(frozen=True)
class Publish:
    """Create the Package Record for ``scope/name``."""

    KIND = "publish"

    address: Pubkey
    bump: int
    scope: str
    name: str
    authority: Pubkey

    def required_signers(self) -> dict[SignerRole, Pubkey]:
        return {SignerRole.authority: self.authority}

    def args(self) -> dict[str, Any]:
        return {
            "address": str(self.address),
            "bump": self.bump,
            "scope": self.scope,
            "name": self.name,
            "authority": str(self.authority),
        }

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> Publish:
        return cls(
            address=Pubkey.from_string(args["address"]),
            bump=int(args["bump"]),
            scope=str(args["scope"]),
            name=str(args["name"]),
            authority=Pubkey.from_string(args["authority"]),
        )


Request = Union[RegisterAuthor, UnregisterAuthor, Publish]

REQUEST_TYPES: dict[str, type] = {
    RegisterAuthor.KIND: RegisterAuthor,
    UnregisterAuthor.KIND: UnregisterAuthor,
    Publish.KIND: Publish,
}


@dataclass
class Transaction:
    """A request bound to a program, plus signatures keyed by base58 pubkey.

    ``nonce`` is part of the signed message, so every transaction built for
    the same request still signs differently and can be settled only once.
    """

    program_id: Pubkey
    request: Request
    signatures: dict[str, bytes] = field(default_factory=dict)
    nonce: str = field(default_factory=lambda: secrets.token_hex(16))

    def message(self) -> bytes:
        """Canonical bytes every signer signs."""
        payload = {
            "program_id": str(self.program_id),
            "kind": self.request.KIND,
            "args": self.request.args(),
            "nonce": self.nonce,
        }
        return json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")

    def sign(self, *keypairs: Keypair) -> Transaction:
        """Add signatures; every keypair must fill one of the required roles."""
        required = set(self.request.required_signers().values())
        message = self.message()
        for keypair in keypairs:
            if keypair.pubkey not in required:
                raise ValueError(f"{keypair.pubkey} is not a required signer of this transaction.")
            self.signatures[str(keypair.pubkey)] = keypair.sign(message)
        return self

    def signature_for(self, pubkey: Pubkey) -> bytes | None:
        return self.signatures.get(str(pubkey))

    @property
    def signature(self) -> str:
        """Identifier of the transaction: the authority's signature, base58."""
        authority = self.request.required_signers()[SignerRole.authority]
        raw = self.signature_for(authority) or b""
        return base58.b58encode(raw).decode("ascii")

    def to_dict(self) -> dict[str, Any]:
        return {
            "program_id": str(self.program_id),
            "kind": self.request.KIND,
            "args": self.request.args(),
            "nonce": self.nonce,
            "signatures": {
                key: base64.b64encode(sig).decode("ascii") for key, sig in self.signatures.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Transaction:
        """Rebuild a transaction; malformed input raises ``InvalidInstruction``."""
        kind = data.get("kind")
        request_type = REQUEST_TYPES.get(kind)
        if request_type is None:
            raise InvalidInstruction(f"Unknown instruction {kind!r}")
        try:
            request = request_type.from_args(data.get("args") or {})
            program_id = Pubkey.from_string(data["program_id"])
            nonce = str(data["nonce"])
            signatures = {
                key: base64.b64decode(sig, validate=True)
                for key, sig in (data.get("signatures") or {}).items()
            }
        except (KeyError, TypeError, ValueError, binascii.Error) as exc:
            raise InvalidInstruction(f"Malformed {kind} instruction: {exc}") from exc
        if not nonce:
            raise InvalidInstruction(f"Malformed {kind} instruction: empty nonce")
        return cls(program_id=program_id, request=request, signatures=signatures, nonce=nonce)
