"""Tests for deterministic address derivation."""

import pytest

from chainreg.crypto import derivation
from chainreg.crypto.derivation import (
    DerivationExhausted,
    SeedTooLong,
    TooManySeeds,
    author_address,
    author_seeds,
    create_program_address,
    derive_address,
    is_on_curve,
    package_address,
    verify_address,
)
from chainreg.crypto.keys import Keypair


PROGRAM_ID = Keypair.from_seed(bytes([1]) * 32).pubkey

# Compressed encoding of the Ed25519 base point.
BASE_POINT = bytes.fromhex("5866666666666666666666666666666666666666666666666666666666666666")


def test_known_points_are_on_curve():
    assert is_on_curve(BASE_POINT)
    assert is_on_curve(b"\x01" + b"\x00" * 31)  # identity
    assert is_on_curve(Keypair.generate().pubkey.raw)


def test_wrong_length_is_not_a_point():
    assert not is_on_curve(b"\x00" * 31)


def test_derivation_is_deterministic():
    first = author_address("alice", PROGRAM_ID)
    second = author_address("alice", PROGRAM_ID)
    assert first == second


def test_derived_address_is_off_curve_and_verifies():
    for name in ("alice", "bob", "carol", "a" * 32, "émile"):
        address, bump = author_address(name, PROGRAM_ID)
        assert not is_on_curve(address.raw)
        assert 0 <= bump <= 255
        assert create_program_address(author_seeds(name) + [bytes([bump])], PROGRAM_ID) == address
        assert verify_address(address, author_seeds(name), bump, PROGRAM_ID)


def test_verify_address_rejects_wrong_inputs():
    address, bump = author_address("alice", PROGRAM_ID)
    other_program = Keypair.from_seed(bytes([2]) * 32).pubkey
    assert not verify_address(address, author_seeds("alicf"), bump, PROGRAM_ID)
    assert not verify_address(address, author_seeds("alice"), bump, other_program)
    assert not verify_address(address, author_seeds("alice"), (bump - 1) % 256, PROGRAM_ID)
    assert not verify_address(address, author_seeds("alice"), 256, PROGRAM_ID)


def test_addresses_differ_by_name_program_and_namespace():
    alice, _ = author_address("alice", PROGRAM_ID)
    bob, _ = author_address("bob", PROGRAM_ID)
    other, _ = author_address("alice", Keypair.from_seed(bytes([2]) * 32).pubkey)
    package, _ = package_address("alice", "alice", PROGRAM_ID)
    assert len({alice, bob, other, package}) == 4


def test_names_are_case_sensitive():
    assert author_address("Alice", PROGRAM_ID) != author_address("alice", PROGRAM_ID)


def test_seed_limits():
    with pytest.raises(SeedTooLong):
        author_address("a" * 33, PROGRAM_ID)
    with pytest.raises(SeedTooLong):
        package_address("scope-that-is-long", "name-that-is-long", PROGRAM_ID)
    with pytest.raises(TooManySeeds):
        derive_address([b"x"] * 16, PROGRAM_ID)  # bump makes 17


def test_bump_search_starts_at_255(monkeypatch):
    answers = iter([True, True])
    monkeypatch.setattr(derivation, "is_on_curve", lambda data: next(answers, False))
    _, bump = derive_address([b"seed"], PROGRAM_ID)
    assert bump == 253


def test_exhausted_search_raises(monkeypatch):
    monkeypatch.setattr(derivation, "is_on_curve", lambda data: True)
    with pytest.raises(DerivationExhausted):
        derive_address([b"seed"], PROGRAM_ID)
