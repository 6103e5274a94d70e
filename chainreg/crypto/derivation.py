"""Deterministic address derivation.

An address is the SHA-256 digest of the seeds, the owning program's
identity, and a fixed marker. Only digests that are *not* points on the
Ed25519 curve are accepted: such an address has no private key, so only the
owning program can ever act for it.

A "bump" byte is appended to the seeds to push the digest off the curve.
Candidates are searched from 255 down to 0; the first that yields an
off-curve digest wins. The same seeds always produce the same
``(address, bump)``, which is what makes names globally unique without a
central allocator.
"""

from __future__ import annotations

import hashlib
from typing import Sequence

from chainreg.crypto.keys import Pubkey

PDA_MARKER = b"ProgramDerivedAddress"
MAX_SEED_LENGTH = 32
MAX_SEEDS = 16
BUMP_CANDIDATES = range(255, -1, -1)

REGISTRY_VERSION_TAG = b"chainreg-v1"
AUTHORS_TAG = b"authors"

# Ed25519 field prime and curve constant d = -121665 / 121666.
_P = 2**255 - 19
_D = (-121665 * pow(121666, _P - 2, _P)) % _P


class DerivationError(Exception):
    """Base class for address derivation failures."""


class SeedTooLong(DerivationError):
    pass


class TooManySeeds(DerivationError):
    pass


class AddressOnCurve(DerivationError):
    """The digest for the given seeds is a valid curve point."""


class DerivationExhausted(DerivationError):
    """No bump candidate produced an off-curve address."""


def is_on_curve(data: bytes) -> bool:
    """Return True if *data* decompresses to a point on edwards25519.

    The y coordinate is taken modulo p and the sign bit is ignored, so the
    test is whether ``x^2 = (y^2 - 1) / (d*y^2 + 1)`` has a solution.
    """
    if len(data) != 32:
        return False
    y = (int.from_bytes(data, "little") & ((1 << 255) - 1)) % _P
    yy = y * y % _P
    u = (yy - 1) % _P
    v = (_D * yy + 1) % _P
    xx = u * pow(v, _P - 2, _P) % _P
    if xx == 0:
        return True
    # Euler's criterion.
    return pow(xx, (_P - 1) // 2, _P) == 1


def _check_seeds(seeds: Sequence[bytes]) -> None:
    if len(seeds) > MAX_SEEDS:
        raise TooManySeeds(f"At most {MAX_SEEDS} seeds are allowed, received {len(seeds)}.")
    for seed in seeds:
        if len(seed) > MAX_SEED_LENGTH:
            raise SeedTooLong(
                f"Seed is too long, maximum allowed is {MAX_SEED_LENGTH} bytes, "
                f"received {len(seed)} bytes."
            )


def create_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> Pubkey:
    """Hash *seeds* (bump included) into an address owned by *program_id*.

    Raises ``AddressOnCurve`` if the digest is a valid curve point.
    """
    _check_seeds(seeds)
    digest = hashlib.sha256()
    for seed in seeds:
        digest.update(seed)
    digest.update(program_id.raw)
    digest.update(PDA_MARKER)
    address = digest.digest()
    if is_on_curve(address):
        raise AddressOnCurve("Derived address lies on the Ed25519 curve.")
    return Pubkey(address)


def derive_address(seeds: Sequence[bytes], program_id: Pubkey) -> tuple[Pubkey, int]:
    """Find the first off-curve address for *seeds*, searching bumps 255..0."""
    # The bump itself occupies one seed slot.
    _check_seeds([*seeds, b"\x00"])
    for bump in BUMP_CANDIDATES:
        try:
            address = create_program_address([*seeds, bytes([bump])], program_id)
        except AddressOnCurve:
            continue
        return address, bump
    raise DerivationExhausted(
        f"No bump in {BUMP_CANDIDATES.start}..{BUMP_CANDIDATES.stop + 1} "
        "produced an off-curve address."
    )


def verify_address(
    address: Pubkey, seeds: Sequence[bytes], bump: int, program_id: Pubkey
) -> bool:
    """Return True if *address* is exactly ``create_program_address(seeds + [bump])``."""
    if not 0 <= bump <= 255:
        return False
    try:
        expected = create_program_address([*seeds, bytes([bump])], program_id)
    except DerivationError:
        return False
    return expected == address


# ---------------------------------------------------------------------------
# Record seeds
# ---------------------------------------------------------------------------


def author_seeds(name: str) -> list[bytes]:
    return [REGISTRY_VERSION_TAG, AUTHORS_TAG, name.encode("utf-8")]


def package_seeds(scope: str, name: str) -> list[bytes]:
    return [REGISTRY_VERSION_TAG, f"{scope}/{name}".encode("utf-8")]


def author_address(name: str, program_id: Pubkey) -> tuple[Pubkey, int]:
    return derive_address(author_seeds(name), program_id)


def package_address(scope: str, name: str, program_id: Pubkey) -> tuple[Pubkey, int]:
    return derive_address(package_seeds(scope, name), program_id)
