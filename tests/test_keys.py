"""Tests for keys, keypairs and signature checks."""

import tempfile
from pathlib import Path

import pytest

from chainreg.crypto.keys import Keypair, Pubkey, verify_signature


def test_pubkey_base58_round_trip():
    kp = Keypair.generate()
    text = str(kp.pubkey)
    assert Pubkey.from_string(text) == kp.pubkey
    assert Pubkey.from_string(f"  {text}\n") == kp.pubkey


def test_pubkey_rejects_bad_text():
    with pytest.raises(ValueError):
        Pubkey.from_string("0OIl")  # not base58
    with pytest.raises(ValueError):
        Pubkey.from_string("abc")  # too short


def test_pubkey_rejects_wrong_length():
    with pytest.raises(ValueError):
        Pubkey(b"\x01" * 31)


def test_keypair_from_seed_is_deterministic():
    a = Keypair.from_seed(bytes(range(32)))
    b = Keypair.from_seed(bytes(range(32)))
    assert a.pubkey == b.pubkey
    with pytest.raises(ValueError):
        Keypair.from_seed(b"short")


def test_secret_key_round_trip():
    kp = Keypair.generate()
    secret = kp.secret_key
    assert len(secret) == 64
    assert secret[32:] == kp.pubkey.raw
    assert Keypair.from_secret_key(secret).pubkey == kp.pubkey
    assert Keypair.from_secret_key(list(secret)).pubkey == kp.pubkey


def test_secret_key_rejects_mismatched_public_half():
    secret = Keypair.generate().secret_key[:32] + Keypair.generate().pubkey.raw
    with pytest.raises(ValueError, match="does not match"):
        Keypair.from_secret_key(secret)


def test_secret_key_rejects_wrong_length():
    with pytest.raises(ValueError, match="64 bytes"):
        Keypair.from_secret_key(b"\x00" * 63)
    with pytest.raises(ValueError):
        Keypair.from_secret_key([300] * 64)


def test_wallet_json_and_file():
    kp = Keypair.generate()
    assert Keypair.from_json(kp.to_json()).pubkey == kp.pubkey

    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "id.json"
        path.write_text(kp.to_json())
        assert Keypair.from_file(path).pubkey == kp.pubkey

    with pytest.raises(ValueError):
        Keypair.from_json("not json")
    with pytest.raises(ValueError):
        Keypair.from_json('{"key": 1}')


def test_verify_signature():
    kp = Keypair.generate()
    message = b"register alice"
    signature = kp.sign(message)

    assert verify_signature(kp.pubkey, message, signature)
    assert not verify_signature(kp.pubkey, b"register mallory", signature)
    assert not verify_signature(Keypair.generate().pubkey, message, signature)
    assert not verify_signature(kp.pubkey, message, signature[:-1])
