"""Ed25519 key material: public keys, keypairs, and signature checks.

Public keys travel as base58 text. Keypairs serialize to the 64-byte
"secret key" array used by wallet files: the 32-byte seed followed by the
32-byte public key.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

import base58
from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

PUBKEY_LENGTH = 32
SEED_LENGTH = 32
SECRET_KEY_LENGTH = 64
SIGNATURE_LENGTH = 64


@dataclass(frozen=True)
class Pubkey:
    """A 32-byte public key or program-derived address."""

    raw: bytes

    def __post_init__(self) -> None:
        if len(self.raw) != PUBKEY_LENGTH:
            raise ValueError(
                f"Public key must be {PUBKEY_LENGTH} bytes, received {len(self.raw)} bytes."
            )

    @classmethod
    def from_string(cls, text: str) -> Pubkey:
        """Parse a base58-encoded public key."""
        try:
            raw = base58.b58decode(text.strip())
        except ValueError as exc:
            raise ValueError(f"Invalid public key {text!r}: {exc}") from exc
        return cls(raw)

    def __bytes__(self) -> bytes:
        return self.raw

    def __str__(self) -> str:
        return base58.b58encode(self.raw).decode("ascii")

    def __repr__(self) -> str:
        return f"Pubkey({self})"


class Keypair:
    """An Ed25519 signing keypair."""

    def __init__(self, signing_key: SigningKey) -> None:
        self._signing_key = signing_key
        self._pubkey = Pubkey(bytes(signing_key.verify_key))

    @classmethod
    def generate(cls) -> Keypair:
        return cls(SigningKey.generate())

    @classmethod
    def from_seed(cls, seed: bytes) -> Keypair:
        if len(seed) != SEED_LENGTH:
            raise ValueError(f"Keypair seed must be {SEED_LENGTH} bytes, received {len(seed)} bytes.")
        return cls(SigningKey(bytes(seed)))

    @classmethod
    def from_secret_key(cls, secret: bytes | bytearray | list[int]) -> Keypair:
        """Build a keypair from the 64-byte secret key (seed + public key).

        Raises ``ValueError`` if the length is wrong or the public half does
        not belong to the seed.
        """
        try:
            data = bytes(secret)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Secret key must be a byte array: {exc}") from exc
        if len(data) != SECRET_KEY_LENGTH:
            raise ValueError(
                f"Secret key must be {SECRET_KEY_LENGTH} bytes, received {len(data)} bytes."
            )
        keypair = cls.from_seed(data[:SEED_LENGTH])
        if keypair.pubkey.raw != data[SEED_LENGTH:]:
            raise ValueError("Secret key public half does not match its seed.")
        return keypair

    @classmethod
    def from_json(cls, text: str) -> Keypair:
        """Parse a wallet JSON array such as ``[12, 34, ...]``."""
        try:
            values = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Keypair JSON is malformed: {exc}") from exc
        if not isinstance(values, list):
            raise ValueError("Keypair JSON must be an array of bytes.")
        return cls.from_secret_key(values)

    @classmethod
    def from_file(cls, path: str | Path) -> Keypair:
        return cls.from_json(Path(path).expanduser().read_text())

    @property
    def pubkey(self) -> Pubkey:
        return self._pubkey

    @property
    def secret_key(self) -> bytes:
        return bytes(self._signing_key) + self._pubkey.raw

    def sign(self, message: bytes) -> bytes:
        return self._signing_key.sign(message).signature

    def to_json(self) -> str:
        return json.dumps(list(self.secret_key))

    def __repr__(self) -> str:
        return f"Keypair(pubkey={self._pubkey})"


def verify_signature(pubkey: Pubkey, message: bytes, signature: bytes) -> bool:
    """Return True if *signature* is a valid Ed25519 signature by *pubkey*."""
    if len(signature) != SIGNATURE_LENGTH:
        return False
    try:
        VerifyKey(pubkey.raw).verify(message, signature)
    except (BadSignatureError, ValueError):
        return False
    return True
