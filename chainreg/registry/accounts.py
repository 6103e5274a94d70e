"""Account storage backends for the registry store.

Two implementations share one small interface:

- ``MemoryAccounts`` keeps everything in dicts (tests, embedded use).
- ``FileAccounts`` persists to a single ``ledger.json`` in a directory.

Every state change arrives as one ``Changes`` batch and is applied with a
single ``commit``, so a transition either lands completely or not at all.
The store serializes access; backends do no locking of their own.
"""

from __future__ import annotations

import base64
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Protocol

from chainreg.crypto.keys import Pubkey


@dataclass(frozen=True)
class Account:
    """Raw account state: record bytes, the lamports held, and the owning program."""

    data: bytes
    lamports: int
    owner: Pubkey


@dataclass
class Changes:
    """A batch of writes applied atomically by ``AccountsDB.commit``."""

    put: dict[Pubkey, Account] = field(default_factory=dict)
    delete: set[Pubkey] = field(default_factory=set)
    balances: dict[Pubkey, int] = field(default_factory=dict)
    processed: set[str] = field(default_factory=set)


class AccountsDB(Protocol):
    def get(self, address: Pubkey) -> Optional[Account]: ...

    def balance(self, pubkey: Pubkey) -> int: ...

    def is_processed(self, signature: str) -> bool: ...

    def commit(self, changes: Changes) -> None: ...


class MemoryAccounts:
    """In-memory account storage."""

    def __init__(self) -> None:
        self._accounts: dict[str, Account] = {}
        self._balances: dict[str, int] = {}
        self._processed: set[str] = set()

    def get(self, address: Pubkey) -> Optional[Account]:
        return self._accounts.get(str(address))

    def balance(self, pubkey: Pubkey) -> int:
        return self._balances.get(str(pubkey), 0)

    def is_processed(self, signature: str) -> bool:
        return signature in self._processed

    def commit(self, changes: Changes) -> None:
        for address in changes.delete:
            self._accounts.pop(str(address), None)
        for address, account in changes.put.items():
            self._accounts[str(address)] = account
        for pubkey, lamports in changes.balances.items():
            self._balances[str(pubkey)] = lamports
        self._processed.update(changes.processed)


class FileAccounts:
    """JSON-file account storage under a ledger directory.

    ``ledger.json`` holds ``{"accounts": {...}, "balances": {...}, "processed": [...]}``,
    the last being the signatures of settled transactions. Commits
    write a temporary file and ``os.replace`` it over the old one.
    """

    LEDGER_FILE = "ledger.json"

    def __init__(self, ledger_dir: str | Path) -> None:
        self.ledger_dir = Path(ledger_dir)
        self.ledger_dir.mkdir(parents=True, exist_ok=True)
        self.ledger_path = self.ledger_dir / self.LEDGER_FILE

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _load(self) -> dict:
        if not self.ledger_path.exists():
            return {"accounts": {}, "balances": {}, "processed": []}
        with open(self.ledger_path) as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Ledger file {self.ledger_path} is corrupt: expected an object.")
        data.setdefault("accounts", {})
        data.setdefault("balances", {})
        data.setdefault("processed", [])
        return data

    def _save(self, data: dict) -> None:
        tmp_path = self.ledger_path.with_suffix(".json.tmp")
        with open(tmp_path, "w") as f:
            json.dump(data, f, indent=2, sort_keys=True)
        os.replace(tmp_path, self.ledger_path)

    @staticmethod
    def _account_to_dict(account: Account) -> dict:
        return {
            "data": base64.b64encode(account.data).decode("ascii"),
            "lamports": account.lamports,
            "owner": str(account.owner),
        }

    @staticmethod
    def _dict_to_account(d: dict) -> Account:
        return Account(
            data=base64.b64decode(d["data"]),
            lamports=int(d["lamports"]),
            owner=Pubkey.from_string(d["owner"]),
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, address: Pubkey) -> Optional[Account]:
        d = self._load()["accounts"].get(str(address))
        return self._dict_to_account(d) if d else None

    def balance(self, pubkey: Pubkey) -> int:
        return int(self._load()["balances"].get(str(pubkey), 0))

    def is_processed(self, signature: str) -> bool:
        return signature in self._load()["processed"]

    def commit(self, changes: Changes) -> None:
        data = self._load()
        for address in changes.delete:
            data["accounts"].pop(str(address), None)
        for address, account in changes.put.items():
            data["accounts"][str(address)] = self._account_to_dict(account)
        for pubkey, lamports in changes.balances.items():
            data["balances"][str(pubkey)] = lamports
        data["processed"] = sorted(set(data["processed"]) | changes.processed)
        self._save(data)
