"""Record models and their fixed binary layout.

Layout (little-endian)::

    discriminator  8 bytes   sha256("account:<RecordName>")[:8]
    bump           u8
    <string>       32-byte buffer + u64 length   (per string field)
    authority      32 bytes

Writer and reader must agree bit for bit: the layout is what the store
persists and what clients decode after reading an account back.
"""

from __future__ import annotations

import hashlib
import struct
from dataclasses import dataclass
from typing import Union

from chainreg.crypto.keys import PUBKEY_LENGTH, Pubkey
from chainreg.registry.errors import InvalidString

DISCRIMINATOR_LENGTH = 8


def _discriminator(record_name: str) -> bytes:
    return hashlib.sha256(f"account:{record_name}".encode()).digest()[:DISCRIMINATOR_LENGTH]


# ---------------------------------------------------------------------------
# Bounded strings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BoundedString:
    """UTF-8 text stored in a fixed 32-byte buffer with an explicit length.

    Only the first ``length`` bytes are meaningful; equality, hashing and
    ``str()`` all use that logical content.
    """

    CAPACITY = 32
    ENCODED_SIZE = CAPACITY + 8

    content: bytes

    @classmethod
    def from_str(cls, text: str) -> BoundedString:
        return cls.from_bytes(text.encode("utf-8"))

    @classmethod
    def from_bytes(cls, src: bytes) -> BoundedString:
        if len(src) > cls.CAPACITY:
            raise InvalidString(
                f"`src` slice is too long, maximum allowed is {cls.CAPACITY} bytes, "
                f"received {len(src)} bytes."
            )
        try:
            src.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidString(str(exc)) from exc
        return cls(bytes(src))

    def encode(self) -> bytes:
        return self.content.ljust(self.CAPACITY, b"\x00") + struct.pack("<Q", len(self.content))

    @classmethod
    def decode(cls, data: bytes) -> BoundedString:
        if len(data) != cls.ENCODED_SIZE:
            raise ValueError(f"Bounded string needs {cls.ENCODED_SIZE} bytes, received {len(data)}.")
        (length,) = struct.unpack("<Q", data[cls.CAPACITY:])
        if length > cls.CAPACITY:
            raise InvalidString(f"Stored length {length} exceeds capacity {cls.CAPACITY}.")
        return cls.from_bytes(data[:length])

    def __len__(self) -> int:
        return len(self.content)

    def __str__(self) -> str:
        return self.content.decode("utf-8")


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AuthorRecord:
    """An author's claimed name bound to the key that controls it."""

    RECORD_NAME = "AuthorAccountData"
    DISCRIMINATOR = _discriminator(RECORD_NAME)
    SIZE = DISCRIMINATOR_LENGTH + 1 + BoundedString.ENCODED_SIZE + PUBKEY_LENGTH

    bump: int
    name: BoundedString
    authority: Pubkey

    def to_bytes(self) -> bytes:
        return b"".join(
            [self.DISCRIMINATOR, bytes([self.bump]), self.name.encode(), self.authority.raw]
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> AuthorRecord:
        _check_header(data, cls.DISCRIMINATOR, cls.SIZE, cls.RECORD_NAME)
        offset = DISCRIMINATOR_LENGTH
        bump = data[offset]
        offset += 1
        name = BoundedString.decode(data[offset:offset + BoundedString.ENCODED_SIZE])
        offset += BoundedString.ENCODED_SIZE
        return cls(bump=bump, name=name, authority=Pubkey(data[offset:offset + PUBKEY_LENGTH]))

    def to_dict(self) -> dict:
        return {"kind": "author", "bump": self.bump, "name": str(self.name), "authority": str(self.authority)}


@dataclass(frozen=True)
class PackageRecord:
    """A scoped package name owned by a publishing authority."""

    RECORD_NAME = "PackageAccountData"
    DISCRIMINATOR = _discriminator(RECORD_NAME)
    SIZE = DISCRIMINATOR_LENGTH + 1 + 2 * BoundedString.ENCODED_SIZE + PUBKEY_LENGTH

    bump: int
    scope: BoundedString
    name: BoundedString
    authority: Pubkey

    @property
    def qualified_name(self) -> str:
        return f"@{self.scope}/{self.name}"

    def to_bytes(self) -> bytes:
        return b"".join(
            [
                self.DISCRIMINATOR,
                bytes([self.bump]),
                self.scope.encode(),
                self.name.encode(),
                self.authority.raw,
            ]
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> PackageRecord:
        _check_header(data, cls.DISCRIMINATOR, cls.SIZE, cls.RECORD_NAME)
        offset = DISCRIMINATOR_LENGTH
        bump = data[offset]
        offset += 1
        scope = BoundedString.decode(data[offset:offset + BoundedString.ENCODED_SIZE])
        offset += BoundedString.ENCODED_SIZE
        name = BoundedString.decode(data[offset:offset + BoundedString.ENCODED_SIZE])
        offset += BoundedString.ENCODED_SIZE
        return cls(
            bump=bump,
            scope=scope,
            name=name,
            authority=Pubkey(data[offset:offset + PUBKEY_LENGTH]),
        )

    def to_dict(self) -> dict:
        return {
            "kind": "package",
            "bump": self.bump,
            "scope": str(self.scope),
            "name": str(self.name),
            "authority": str(self.authority),
        }


Record = Union[AuthorRecord, PackageRecord]


def _check_header(data: bytes, discriminator: bytes, size: int, record_name: str) -> None:
    if len(data) != size:
        raise ValueError(f"{record_name} needs {size} bytes, received {len(data)}.")
    if data[:DISCRIMINATOR_LENGTH] != discriminator:
        raise ValueError(f"Account data is not a {record_name}.")


def decode_record(data: bytes) -> Record:
    """Decode account data into the record type named by its discriminator."""
    head = data[:DISCRIMINATOR_LENGTH]
    if head == AuthorRecord.DISCRIMINATOR:
        return AuthorRecord.from_bytes(data)
    if head == PackageRecord.DISCRIMINATOR:
        return PackageRecord.from_bytes(data)
    raise ValueError("Unknown record discriminator.")
