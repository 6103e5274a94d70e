"""Pydantic models for the oracle and ledger-node HTTP APIs."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Oracle
# ---------------------------------------------------------------------------


class AttestationBody(BaseModel):
    """Oracle request body. Fields are optional so absence maps to a 400."""

    username: Optional[str] = None
    keypair: Optional[list[int]] = None
    pubkey: Optional[str] = None


# ---------------------------------------------------------------------------
# Ledger node
# ---------------------------------------------------------------------------


class TransactionBody(BaseModel):
    """Mirrors chainreg.registry.instructions.Transaction.to_dict()."""

    program_id: str
    kind: str
    args: dict[str, Any] = Field(default_factory=dict)
    nonce: str = ""
    signatures: dict[str, str] = Field(default_factory=dict)


class SignatureResponse(BaseModel):
    signature: str


class AccountResponse(BaseModel):
    """Mirrors chainreg.registry.accounts.Account; ``data`` is base64."""

    address: str
    owner: str
    lamports: int
    data: str


class AirdropRequest(BaseModel):
    pubkey: str
    lamports: int = Field(gt=0)


class BalanceResponse(BaseModel):
    pubkey: str
    balance: int


class ErrorResponse(BaseModel):
    kind: str
    message: str
