"""Oracle attestation service.

Stateless request handler: validate the request, check the GitHub proof,
and if it holds, co-sign and submit the author registration with the
oracle's own key. All state lives in the registry store; the payer's key
material is used for one request and never stored.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from chainreg.client.transport import LedgerTransport
from chainreg.crypto.derivation import DerivationError, author_address
from chainreg.crypto.keys import Keypair, Pubkey
from chainreg.errors import TransportError
from chainreg.oracle.verifier import IdentityVerifier, proof_string
from chainreg.registry.errors import RegistryError
from chainreg.registry.instructions import RegisterAuthor, Transaction

logger = logging.getLogger(__name__)

REGISTER_RPC_FAILURE = "Failed to call the Register RPC endpoint: "

# GitHub logins: alphanumerics and hyphens, at most 39 characters.
GITHUB_LOGIN = re.compile(r"^[A-Za-z0-9-]{1,39}\Z")


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class OracleError(Exception):
    """Base class for attestation failures; ``status_code`` is the HTTP status."""

    status_code = 500


class BadRequest(OracleError):
    status_code = 400


class Unauthorized(OracleError):
    status_code = 401


class RegistrationRejected(OracleError):
    status_code = 500


class UpstreamUnavailable(OracleError):
    status_code = 502


# ---------------------------------------------------------------------------
# Request / result
# ---------------------------------------------------------------------------


@dataclass
class AttestationRequest:
    """An attestation request as received from the wire."""

    username: Optional[str] = None
    keypair: Optional[Union[bytes, Sequence[int]]] = None
    pubkey: Optional[str] = None


@dataclass(frozen=True)
class AttestationResult:
    address: Pubkey
    bump: int
    authority: Pubkey
    signature: str


def unauthorized_message(claimed_key: str) -> str:
    return f'Make sure you added the following text "{proof_string(claimed_key)}" into your GitHub bio.'


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class OracleService:
    """Verifies GitHub identity proofs and co-signs author registrations.

    Parameters
    ----------
    verifier:
        Identity verifier used for the proof check.
    ledger:
        Transport to the registry store (``LedgerTransport``).
    oracle_keypair:
        The oracle's signing key; its public half must be the key the store
        was configured to trust.
    program_id:
        Registry program identity used for address derivation.
    """

    def __init__(
        self,
        verifier: IdentityVerifier,
        ledger: LedgerTransport,
        oracle_keypair: Keypair,
        program_id: Pubkey,
    ) -> None:
        self._verifier = verifier
        self._ledger = ledger
        self._oracle_keypair = oracle_keypair
        self._program_id = program_id

    @property
    def oracle_pubkey(self) -> Pubkey:
        return self._oracle_keypair.pubkey

    def attest(self, request: AttestationRequest) -> AttestationResult:
        """Attest *request* and register the author; raises ``OracleError`` on failure."""
        if not request.keypair:
            raise BadRequest("Missing `keypair` request parameter")
        if not request.username:
            raise BadRequest("Missing `username` request parameter")
        if not isinstance(request.username, str) or not GITHUB_LOGIN.match(request.username):
            raise BadRequest("Invalid `username` request parameter")

        try:
            payer = Keypair.from_secret_key(request.keypair)
        except ValueError as exc:
            raise BadRequest(f"Invalid `keypair` request parameter: {exc}") from exc

        claimed_key = request.pubkey or str(payer.pubkey)
        try:
            Pubkey.from_string(claimed_key)
        except ValueError as exc:
            raise BadRequest(f"Invalid `pubkey` request parameter: {exc}") from exc

        logger.info("Attestation requested for %r with key %s", request.username, claimed_key)

        try:
            verified = self._verifier.verify(request.username, claimed_key)
        except TransportError as exc:
            raise UpstreamUnavailable(f"Failed to fetch the GitHub profile: {exc}") from exc
        if not verified:
            raise Unauthorized(unauthorized_message(claimed_key))

        try:
            address, bump = author_address(request.username, self._program_id)
        except DerivationError as exc:
            raise BadRequest(f"Invalid `username` request parameter: {exc}") from exc

        tx = Transaction(
            program_id=self._program_id,
            request=RegisterAuthor(
                address=address,
                bump=bump,
                name=request.username,
                authority=payer.pubkey,
                oracle=self.oracle_pubkey,
            ),
        ).sign(payer, self._oracle_keypair)

        try:
            signature = self._ledger.send_transaction(tx)
        except RegistryError as exc:
            raise RegistrationRejected(REGISTER_RPC_FAILURE + str(exc)) from exc
        except TransportError as exc:
            raise UpstreamUnavailable(REGISTER_RPC_FAILURE + str(exc)) from exc

        logger.info("Registered author %r at %s", request.username, address)
        return AttestationResult(address=address, bump=bump, authority=payer.pubkey, signature=signature)
