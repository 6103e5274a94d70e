"""Registry store: the authoritative state machine for Author and Package records.

Every state change goes through one of three signed operations:

- ``create_author``: oracle-attested name registration
- ``delete_author``: closing an author record by its authority
- ``create_package``: append-only package publication

Each runs as a single transition under the store lock: signer checks,
invariant checks, and the write happen together or not at all. A
transaction settles at most once: its signature is recorded with the write,
and a resubmission fails with ``AlreadyExists``. Nothing else in the
codebase writes records.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from chainreg.crypto.derivation import author_seeds, package_seeds, verify_address
from chainreg.crypto.keys import Pubkey, verify_signature
from chainreg.registry.accounts import Account, AccountsDB, Changes, MemoryAccounts
from chainreg.registry.errors import (
    AddressMismatch,
    AlreadyExists,
    AuthorityMismatch,
    InsufficientFunds,
    InvalidInstruction,
    InvalidOracle,
    MissingSignature,
    NotFound,
    RegistryError,
)
from chainreg.registry.instructions import (
    Publish,
    RegisterAuthor,
    SignerRole,
    Transaction,
    UnregisterAuthor,
)
from chainreg.registry.models import (
    AuthorRecord,
    BoundedString,
    PackageRecord,
    Record,
    decode_record,
)

logger = logging.getLogger(__name__)

LAMPORTS_PER_SOL = 1_000_000_000

# Storage cost parameters: bytes charged per account on top of its data,
# lamports per byte-year, and the years prepaid to make an account permanent.
ACCOUNT_STORAGE_OVERHEAD = 128
LAMPORTS_PER_BYTE_YEAR = 3480
EXEMPTION_YEARS = 2


def rent_exempt_minimum(data_len: int) -> int:
    """Lamports that must be deposited to keep an account of *data_len* bytes."""
    return (ACCOUNT_STORAGE_OVERHEAD + data_len) * LAMPORTS_PER_BYTE_YEAR * EXEMPTION_YEARS


class RegistryStore:
    """State machine over registry accounts.

    Parameters
    ----------
    program_id:
        Identity of the registry program; owner of every record and input to
        every address derivation.
    oracle_pubkey:
        The single key whose signature attests author identities.
    accounts:
        Storage backend. Defaults to in-memory storage.
    """

    def __init__(
        self,
        program_id: Pubkey,
        oracle_pubkey: Pubkey,
        accounts: Optional[AccountsDB] = None,
    ) -> None:
        self.program_id = program_id
        self.oracle_pubkey = oracle_pubkey
        self._accounts: AccountsDB = accounts if accounts is not None else MemoryAccounts()
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Signed operations
    # ------------------------------------------------------------------

    def process(self, tx: Transaction) -> str:
        """Dispatch *tx* to the operation for its request type."""
        handlers: dict[type, Callable[[Transaction], str]] = {
            RegisterAuthor: self.create_author,
            UnregisterAuthor: self.delete_author,
            Publish: self.create_package,
        }
        handler = handlers.get(type(tx.request))
        if handler is None:
            raise InvalidInstruction(f"Unsupported request {type(tx.request).__name__}")
        return handler(tx)

    def create_author(self, tx: Transaction) -> str:
        return self._transition(tx, RegisterAuthor, self._create_author)

    def delete_author(self, tx: Transaction) -> str:
        return self._transition(tx, UnregisterAuthor, self._delete_author)

    def create_package(self, tx: Transaction) -> str:
        return self._transition(tx, Publish, self._create_package)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_account(self, address: Pubkey) -> Optional[Account]:
        return self._accounts.get(address)

    def read_record(self, address: Pubkey) -> Record:
        """Return the live record at *address*; raises ``NotFound`` otherwise."""
        account = self._accounts.get(address)
        if account is None:
            raise NotFound(f"Account {address} does not exist")
        return decode_record(account.data)

    def balance(self, pubkey: Pubkey) -> int:
        return self._accounts.balance(pubkey)

    def airdrop(self, pubkey: Pubkey, lamports: int) -> int:
        """Credit *lamports* to *pubkey*; returns the new balance."""
        if lamports <= 0:
            raise InvalidInstruction("Airdrop amount must be positive")
        with self._lock:
            new_balance = self._accounts.balance(pubkey) + lamports
            self._accounts.commit(Changes(balances={pubkey: new_balance}))
        logger.info("Airdropped %d lamports to %s", lamports, pubkey)
        return new_balance

    # ------------------------------------------------------------------
    # Transition machinery
    # ------------------------------------------------------------------

    def _transition(
        self,
        tx: Transaction,
        request_type: type,
        apply: Callable[[Transaction, Changes], None],
    ) -> str:
        if not isinstance(tx.request, request_type):
            raise InvalidInstruction(
                f"Expected {request_type.__name__}, received {type(tx.request).__name__}"
            )
        with self._lock:
            try:
                if tx.program_id != self.program_id:
                    raise InvalidInstruction(f"Transaction targets program {tx.program_id}")
                self._verify_signers(tx)
                if self._accounts.is_processed(tx.signature):
                    raise AlreadyExists(f"Transaction {tx.signature} was already processed")
                changes = Changes(processed={tx.signature})
                apply(tx, changes)
            except RegistryError as exc:
                logger.warning("Rejected %s: %s", tx.request.KIND, exc)
                raise
            self._accounts.commit(changes)
        return tx.signature

    def _verify_signers(self, tx: Transaction) -> None:
        message = tx.message()
        for role, pubkey in tx.request.required_signers().items():
            signature = tx.signature_for(pubkey)
            if signature is not None and verify_signature(pubkey, message, signature):
                continue
            if role is SignerRole.oracle:
                raise InvalidOracle()
            raise MissingSignature()

    def _allocate(self, changes: Changes, address: Pubkey, data: bytes, payer: Pubkey) -> None:
        lamports = rent_exempt_minimum(len(data))
        payer_balance = self._accounts.balance(payer)
        if payer_balance < lamports:
            raise InsufficientFunds(
                f"Account {payer} has {payer_balance} lamports, {lamports} required"
            )
        changes.balances[payer] = payer_balance - lamports
        changes.put[address] = Account(data=data, lamports=lamports, owner=self.program_id)

    # ------------------------------------------------------------------
    # Operation bodies (run under the lock)
    # ------------------------------------------------------------------

    def _create_author(self, tx: Transaction, changes: Changes) -> None:
        req: RegisterAuthor = tx.request  # type: ignore[assignment]
        if self._accounts.get(req.address) is not None:
            raise AlreadyExists(f"Account {req.address} already in use")
        if req.oracle != self.oracle_pubkey:
            raise InvalidOracle()
        name = BoundedString.from_str(req.name)
        if not verify_address(req.address, author_seeds(req.name), req.bump, self.program_id):
            raise AddressMismatch(f"Address {req.address} is not derived from author {req.name!r}")

        record = AuthorRecord(bump=req.bump, name=name, authority=req.authority)
        self._allocate(changes, req.address, record.to_bytes(), payer=req.authority)
        logger.info("Registered author account %s for %r (authority %s)", req.address, req.name, req.authority)

    def _delete_author(self, tx: Transaction, changes: Changes) -> None:
        req: UnregisterAuthor = tx.request  # type: ignore[assignment]
        account = self._accounts.get(req.address)
        if account is None:
            raise NotFound(f"Account {req.address} does not exist")
        if account.owner != self.program_id:
            raise InvalidInstruction(f"Account {req.address} is not owned by the registry")
        try:
            record = AuthorRecord.from_bytes(account.data)
        except ValueError as exc:
            raise InvalidInstruction(f"Account {req.address} is not an author record") from exc
        if record.authority != req.authority:
            raise AuthorityMismatch()

        changes.delete.add(req.address)
        changes.balances[req.authority] = self._accounts.balance(req.authority) + account.lamports
        logger.info(
            "Closing author account %s and transferring %d lamports to %s",
            req.address,
            account.lamports,
            req.authority,
        )

    def _create_package(self, tx: Transaction, changes: Changes) -> None:
        req: Publish = tx.request  # type: ignore[assignment]
        if self._accounts.get(req.address) is not None:
            raise AlreadyExists(f"Account {req.address} already in use")
        scope = BoundedString.from_str(req.scope)
        name = BoundedString.from_str(req.name)
        if not verify_address(req.address, package_seeds(req.scope, req.name), req.bump, self.program_id):
            raise AddressMismatch(
                f"Address {req.address} is not derived from package @{req.scope}/{req.name}"
            )

        record = PackageRecord(bump=req.bump, scope=scope, name=name, authority=req.authority)
        self._allocate(changes, req.address, record.to_bytes(), payer=req.authority)
        logger.info("Published @%s/%s at %s (authority %s)", req.scope, req.name, req.address, req.authority)
