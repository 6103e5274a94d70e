"""Ledger router -- exposes the registry store to remote clients.

Store rejections are rendered by the app's ``RegistryError`` handler as
``{kind, message}`` so ``HttpLedger`` can rebuild the same exception.
"""

from __future__ import annotations

import base64

from fastapi import APIRouter, Depends, Request

from chainreg.crypto.keys import Pubkey
from chainreg.registry.errors import InvalidInstruction, NotFound
from chainreg.registry.instructions import Transaction
from chainreg.registry.store import RegistryStore
from chainreg.web.models import (
    AccountResponse,
    AirdropRequest,
    BalanceResponse,
    SignatureResponse,
    TransactionBody,
)

router = APIRouter(tags=["ledger"])


def get_store(request: Request) -> RegistryStore:
    """Return the RegistryStore attached to the running app."""
    return request.app.state.store


def _parse_pubkey(text: str) -> Pubkey:
    try:
        return Pubkey.from_string(text)
    except ValueError as exc:
        raise InvalidInstruction(str(exc)) from exc


@router.post("/transactions", response_model=SignatureResponse, summary="Submit a signed transaction")
def send_transaction(body: TransactionBody, store: RegistryStore = Depends(get_store)):
    tx = Transaction.from_dict(body.model_dump())
    return SignatureResponse(signature=store.process(tx))


@router.get("/accounts/{address}", response_model=AccountResponse, summary="Read an account")
def get_account(address: str, store: RegistryStore = Depends(get_store)):
    pubkey = _parse_pubkey(address)
    account = store.get_account(pubkey)
    if account is None:
        raise NotFound(f"Account {pubkey} does not exist")
    return AccountResponse(
        address=str(pubkey),
        owner=str(account.owner),
        lamports=account.lamports,
        data=base64.b64encode(account.data).decode("ascii"),
    )


@router.post("/airdrop", response_model=BalanceResponse, summary="Fund a key")
def airdrop(body: AirdropRequest, store: RegistryStore = Depends(get_store)):
    pubkey = _parse_pubkey(body.pubkey)
    return BalanceResponse(pubkey=str(pubkey), balance=store.airdrop(pubkey, body.lamports))


@router.get("/balances/{pubkey}", response_model=BalanceResponse, summary="Read a balance")
def balance(pubkey: str, store: RegistryStore = Depends(get_store)):
    key = _parse_pubkey(pubkey)
    return BalanceResponse(pubkey=str(key), balance=store.balance(key))
