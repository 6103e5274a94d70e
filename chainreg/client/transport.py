"""Ledger transports: how clients and the oracle reach the registry store.

``LedgerTransport`` is the seam. Concrete implementations:

- ``LocalLedger``: calls a ``RegistryStore`` in the same process.
- ``HttpLedger``: talks to a ledger node over HTTP with ``httpx``.

Store rejections come back as the same ``RegistryError`` subclasses on both
paths. Network failures raise ``TransportError`` and are never retried here.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Optional, Protocol, runtime_checkable

import httpx

from chainreg.crypto.keys import Pubkey
from chainreg.errors import TransportError
from chainreg.registry.accounts import Account
from chainreg.registry.errors import NotFound, RegistryError
from chainreg.registry.instructions import Transaction
from chainreg.registry.models import Record, decode_record
from chainreg.registry.store import RegistryStore

logger = logging.getLogger(__name__)


@runtime_checkable
class LedgerTransport(Protocol):
    def send_transaction(self, tx: Transaction) -> str:
        """Submit a signed transaction; returns its signature."""
        ...

    def get_account(self, address: Pubkey) -> Optional[Account]: ...

    def read_record(self, address: Pubkey) -> Record:
        """Decode the live record at *address*; raises ``NotFound`` if absent."""
        ...

    def airdrop(self, pubkey: Pubkey, lamports: int) -> int: ...

    def balance(self, pubkey: Pubkey) -> int: ...


class LocalLedger:
    """In-process transport over a ``RegistryStore``."""

    def __init__(self, store: RegistryStore) -> None:
        self.store = store

    def send_transaction(self, tx: Transaction) -> str:
        return self.store.process(tx)

    def get_account(self, address: Pubkey) -> Optional[Account]:
        return self.store.get_account(address)

    def read_record(self, address: Pubkey) -> Record:
        return self.store.read_record(address)

    def airdrop(self, pubkey: Pubkey, lamports: int) -> int:
        return self.store.airdrop(pubkey, lamports)

    def balance(self, pubkey: Pubkey) -> int:
        return self.store.balance(pubkey)


class HttpLedger:
    """Transport for a remote ledger node (see ``chainreg.web.routers.ledger``).

    Parameters
    ----------
    base_url:
        Root URL of the ledger node.
    client:
        Optional preconfigured ``httpx.Client`` (its ``base_url`` is used).
    """

    def __init__(
        self,
        base_url: str = "",
        client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ) -> None:
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout)

    def close(self) -> None:
        self._client.close()

    # -- plumbing ------------------------------------------------------------

    def _request(self, method: str, path: str, payload: Any = None) -> httpx.Response:
        try:
            resp = self._client.request(method, path, json=payload)
        except httpx.HTTPError as exc:
            raise TransportError(f"Ledger request {method} {path} failed: {exc}") from exc
        if resp.status_code >= 400:
            raise _error_from_response(resp)
        return resp

    @staticmethod
    def _json(resp: httpx.Response) -> dict[str, Any]:
        try:
            return resp.json()
        except ValueError as exc:
            raise TransportError(f"Ledger node returned malformed JSON: {exc}") from exc

    # -- operations ----------------------------------------------------------

    def send_transaction(self, tx: Transaction) -> str:
        resp = self._request("POST", "/transactions", tx.to_dict())
        return self._json(resp)["signature"]

    def get_account(self, address: Pubkey) -> Optional[Account]:
        try:
            resp = self._request("GET", f"/accounts/{address}")
        except NotFound:
            return None
        body = self._json(resp)
        return Account(
            data=base64.b64decode(body["data"]),
            lamports=int(body["lamports"]),
            owner=Pubkey.from_string(body["owner"]),
        )

    def read_record(self, address: Pubkey) -> Record:
        account = self.get_account(address)
        if account is None:
            raise NotFound(f"Account {address} does not exist")
        return decode_record(account.data)

    def airdrop(self, pubkey: Pubkey, lamports: int) -> int:
        resp = self._request("POST", "/airdrop", {"pubkey": str(pubkey), "lamports": lamports})
        return int(self._json(resp)["balance"])

    def balance(self, pubkey: Pubkey) -> int:
        resp = self._request("GET", f"/balances/{pubkey}")
        return int(self._json(resp)["balance"])


def _error_from_response(resp: httpx.Response) -> Exception:
    """Rebuild a store error from a ``{kind, message}`` body, else a transport error."""
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("kind"):
        return RegistryError.from_kind(body["kind"], body.get("message", ""))
    logger.warning("Ledger node returned %s without an error kind", resp.status_code)
    return TransportError(f"Ledger node returned {resp.status_code}: {resp.text[:200]}")
