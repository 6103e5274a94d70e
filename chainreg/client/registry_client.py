"""Registry client: register, unregister, publish and look up records.

Each operation derives the record address, builds the signed request the
store expects, submits it, and reads the affected record back. Failures
from the oracle or the store propagate unmodified; nothing is retried.
"""

from __future__ import annotations

import logging
from typing import Optional

from chainreg.client.oracle import OracleTransport
from chainreg.client.transport import LedgerTransport
from chainreg.crypto.derivation import author_address, package_address
from chainreg.crypto.keys import Keypair, Pubkey
from chainreg.errors import LedgerStateError
from chainreg.registry.errors import NotFound
from chainreg.registry.instructions import Publish, Transaction, UnregisterAuthor
from chainreg.registry.models import AuthorRecord, PackageRecord, Record

logger = logging.getLogger(__name__)


def parse_package_name(package: str) -> tuple[str, str]:
    """Split ``@scope/name`` (leading ``@`` optional) into ``(scope, name)``."""
    scope, sep, name = package.lstrip("@").partition("/")
    if not sep or not scope or not name or "/" in name:
        raise ValueError(f"Package must look like @scope/name, got {package!r}")
    return scope, name


class RegistryClient:
    """Orchestrates registry operations for one wallet.

    Parameters
    ----------
    ledger:
        Transport to the registry store.
    oracle:
        Transport to the oracle attestation service.
    wallet:
        The keypair that pays for and controls records created by this client.
    program_id:
        Registry program identity.
    """

    def __init__(
        self,
        ledger: LedgerTransport,
        oracle: OracleTransport,
        wallet: Keypair,
        program_id: Pubkey,
    ) -> None:
        self.ledger = ledger
        self.oracle = oracle
        self.wallet = wallet
        self.program_id = program_id

    # -- authors -------------------------------------------------------------

    def register(self, username: str, pubkey: Optional[str] = None) -> AuthorRecord:
        """Register *username* through the oracle; returns the stored record.

        *pubkey* is the key whose proof is checked on GitHub. It defaults to
        the wallet's key; the wallet always becomes the record's authority.
        """
        address, _ = author_address(username, self.program_id)
        attested = self.oracle.request_registration(username, self.wallet, pubkey)
        logger.info("Oracle registered %r at %s", username, attested)
        return self._read(address, AuthorRecord)

    def unregister(self, username: str) -> Pubkey:
        """Close *username*'s author record; returns the closed address."""
        address, _ = author_address(username, self.program_id)
        tx = Transaction(
            program_id=self.program_id,
            request=UnregisterAuthor(address=address, authority=self.wallet.pubkey),
        ).sign(self.wallet)
        self.ledger.send_transaction(tx)
        try:
            record = self._read(address, AuthorRecord)
        except NotFound:
            return address
        raise LedgerStateError(f"Author account {address} still exists after unregister: {record}")

    def author(self, username: str) -> AuthorRecord:
        address, _ = author_address(username, self.program_id)
        return self._read(address, AuthorRecord)

    # -- packages ------------------------------------------------------------

    def publish(self, scope: str, name: str) -> PackageRecord:
        """Publish ``@scope/name`` under the wallet's authority."""
        address, bump = package_address(scope, name, self.program_id)
        tx = Transaction(
            program_id=self.program_id,
            request=Publish(
                address=address,
                bump=bump,
                scope=scope,
                name=name,
                authority=self.wallet.pubkey,
            ),
        ).sign(self.wallet)
        self.ledger.send_transaction(tx)
        return self._read(address, PackageRecord)

    def info(self, scope: str, name: str) -> PackageRecord:
        address, _ = package_address(scope, name, self.program_id)
        return self._read(address, PackageRecord)

    # -- funds ---------------------------------------------------------------

    def airdrop(self, lamports: int) -> int:
        return self.ledger.airdrop(self.wallet.pubkey, lamports)

    def balance(self) -> int:
        return self.ledger.balance(self.wallet.pubkey)

    def _read(self, address: Pubkey, record_type: type) -> Record:
        """Read the record at *address*; it must decode as *record_type*."""
        try:
            record = self.ledger.read_record(address)
        except ValueError as exc:
            raise LedgerStateError(f"Account {address} holds no readable record: {exc}") from exc
        if not isinstance(record, record_type):
            raise LedgerStateError(
                f"Account {address} holds a {type(record).__name__}, expected {record_type.__name__}"
            )
        return record
