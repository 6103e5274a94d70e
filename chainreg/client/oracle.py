"""Oracle transports: how the client asks the oracle to attest a registration.

- ``HttpOracle`` POSTs to a running oracle service.
- ``LocalOracle`` calls an ``OracleService`` in the same process.

Both return the registered address text on success and raise
``OracleRejected`` carrying the oracle's status and body text otherwise.
"""

from __future__ import annotations

from typing import Optional, Protocol

import httpx

from chainreg.crypto.keys import Keypair
from chainreg.errors import TransportError
from chainreg.oracle.service import AttestationRequest, OracleError, OracleService


class OracleRejected(Exception):
    """The oracle answered with a non-success status."""

    def __init__(self, status_code: int, text: str) -> None:
        self.status_code = status_code
        self.text = text
        super().__init__(text)


class OracleTransport(Protocol):
    def request_registration(
        self, username: str, payer: Keypair, pubkey: Optional[str] = None
    ) -> str:
        """Ask the oracle to register *username*; returns the author address text."""
        ...


class HttpOracle:
    """Talks to the oracle HTTP endpoint."""

    def __init__(
        self,
        url: str,
        client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ) -> None:
        self._url = url
        self._client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def request_registration(
        self, username: str, payer: Keypair, pubkey: Optional[str] = None
    ) -> str:
        body: dict = {"username": username, "keypair": list(payer.secret_key)}
        if pubkey:
            body["pubkey"] = pubkey
        try:
            resp = self._client.post(self._url, json=body)
        except httpx.HTTPError as exc:
            raise TransportError(f"Oracle request to {self._url} failed: {exc}") from exc
        if resp.status_code != 200:
            raise OracleRejected(resp.status_code, resp.text)
        return resp.text.strip()


class LocalOracle:
    """In-process oracle over an ``OracleService``."""

    def __init__(self, service: OracleService) -> None:
        self.service = service

    def request_registration(
        self, username: str, payer: Keypair, pubkey: Optional[str] = None
    ) -> str:
        request = AttestationRequest(username=username, keypair=payer.secret_key, pubkey=pubkey)
        try:
            result = self.service.attest(request)
        except OracleError as exc:
            raise OracleRejected(exc.status_code, str(exc)) from exc
        return str(result.address)
