"""Tests for bounded strings and the record binary layout."""

import hashlib
import struct

import pytest

from chainreg.crypto.keys import Keypair
from chainreg.registry.errors import InvalidString
from chainreg.registry.models import (
    AuthorRecord,
    BoundedString,
    PackageRecord,
    decode_record,
)


AUTHORITY = Keypair.from_seed(bytes([3]) * 32).pubkey


def test_bounded_string_capacity():
    assert str(BoundedString.from_str("a" * 32)) == "a" * 32
    with pytest.raises(InvalidString) as exc_info:
        BoundedString.from_str("a" * 33)
    assert exc_info.value.message == (
        "`src` slice is too long, maximum allowed is 32 bytes, received 33 bytes."
    )


def test_bounded_string_counts_utf8_bytes():
    assert len(BoundedString.from_str("é" * 16)) == 32
    with pytest.raises(InvalidString):
        BoundedString.from_str("é" * 17)


def test_bounded_string_encoding():
    encoded = BoundedString.from_str("alice").encode()
    assert len(encoded) == BoundedString.ENCODED_SIZE == 40
    assert encoded[:5] == b"alice"
    assert encoded[5:32] == b"\x00" * 27
    assert struct.unpack("<Q", encoded[32:]) == (5,)


def test_bounded_string_ignores_padding_bytes():
    raw = b"alice" + b"\xff" * 27 + struct.pack("<Q", 5)
    decoded = BoundedString.decode(raw)
    assert decoded == BoundedString.from_str("alice")
    assert str(decoded) == "alice"


def test_bounded_string_rejects_oversized_length():
    raw = b"a" * 32 + struct.pack("<Q", 33)
    with pytest.raises(InvalidString):
        BoundedString.decode(raw)


def test_author_record_layout():
    record = AuthorRecord(bump=254, name=BoundedString.from_str("alice"), authority=AUTHORITY)
    data = record.to_bytes()

    assert AuthorRecord.SIZE == 81
    assert len(data) == 81
    assert data[:8] == hashlib.sha256(b"account:AuthorAccountData").digest()[:8]
    assert data[8] == 254
    assert data[9:14] == b"alice"
    assert struct.unpack("<Q", data[41:49]) == (5,)
    assert data[49:81] == AUTHORITY.raw
    assert AuthorRecord.from_bytes(data) == record


def test_package_record_layout():
    record = PackageRecord(
        bump=250,
        scope=BoundedString.from_str("acme"),
        name=BoundedString.from_str("widgets"),
        authority=AUTHORITY,
    )
    data = record.to_bytes()

    assert PackageRecord.SIZE == 121
    assert len(data) == 121
    assert data[:8] == hashlib.sha256(b"account:PackageAccountData").digest()[:8]
    assert data[9:13] == b"acme"
    assert data[49:56] == b"widgets"
    assert data[89:121] == AUTHORITY.raw
    assert PackageRecord.from_bytes(data) == record
    assert record.qualified_name == "@acme/widgets"


def test_decode_record_dispatches_on_discriminator():
    author = AuthorRecord(bump=1, name=BoundedString.from_str("bob"), authority=AUTHORITY)
    package = PackageRecord(
        bump=2,
        scope=BoundedString.from_str("bob"),
        name=BoundedString.from_str("tool"),
        authority=AUTHORITY,
    )
    assert decode_record(author.to_bytes()) == author
    assert decode_record(package.to_bytes()) == package

    with pytest.raises(ValueError):
        decode_record(b"\x00" * 81)
    with pytest.raises(ValueError):
        AuthorRecord.from_bytes(package.to_bytes())


def test_to_dict():
    record = AuthorRecord(bump=7, name=BoundedString.from_str("bob"), authority=AUTHORITY)
    assert record.to_dict() == {
        "kind": "author",
        "bump": 7,
        "name": "bob",
        "authority": str(AUTHORITY),
    }
