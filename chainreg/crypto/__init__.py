"""Key material and deterministic address derivation."""

from chainreg.crypto.derivation import (
    DerivationError,
    DerivationExhausted,
    derive_address,
    is_on_curve,
)
from chainreg.crypto.keys import Keypair, Pubkey, verify_signature

__all__ = [
    "DerivationError",
    "DerivationExhausted",
    "Keypair",
    "Pubkey",
    "derive_address",
    "is_on_curve",
    "verify_signature",
]
