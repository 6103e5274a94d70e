"""Oracle router -- GitHub identity attestation and co-signed registration."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import PlainTextResponse

from chainreg.oracle.service import AttestationRequest, OracleError, OracleService
from chainreg.web.models import AttestationBody

router = APIRouter(tags=["oracle"])

POST_ONLY_MESSAGE = "This endpoint supports only POST requests."


def get_oracle_service(request: Request) -> OracleService:
    """Return the OracleService attached to the running app."""
    return request.app.state.oracle_service


@router.post("/", response_class=PlainTextResponse, summary="Attest and register an author")
def attest(
    body: Optional[AttestationBody] = Body(None),
    service: OracleService = Depends(get_oracle_service),
):
    """Verify the GitHub proof for ``username`` and register the author.

    Responds with the new author account address as plain text. Failures
    respond with plain text as well: 400 for a missing field, 401 when the
    proof is absent from the GitHub bio, 500 when the registry rejects the
    registration, 502 when GitHub or the ledger is unreachable.
    """
    body = body or AttestationBody()
    try:
        result = service.attest(
            AttestationRequest(username=body.username, keypair=body.keypair, pubkey=body.pubkey)
        )
    except OracleError as exc:
        return PlainTextResponse(str(exc), status_code=exc.status_code)
    return PlainTextResponse(str(result.address))


@router.api_route(
    "/",
    methods=["GET", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
def post_only():
    return PlainTextResponse(POST_ONLY_MESSAGE, status_code=405)
