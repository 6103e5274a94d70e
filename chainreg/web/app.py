"""FastAPI applications: the oracle service and the ledger node.

``create_oracle_app`` and ``create_ledger_app`` accept prebuilt services for
tests; without them, services are built from environment configuration.
"""

from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from chainreg import __version__
from chainreg.client.transport import HttpLedger
from chainreg.config import OracleSecrets, Settings
from chainreg.oracle.service import OracleService
from chainreg.oracle.verifier import GitHubProfileFetcher, IdentityVerifier
from chainreg.registry.accounts import FileAccounts
from chainreg.registry.errors import ErrorKind, RegistryError
from chainreg.registry.store import RegistryStore
from chainreg.web.models import ErrorResponse
from chainreg.web.routers import ledger, oracle

_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.already_exists: 409,
    ErrorKind.not_found: 404,
    ErrorKind.invalid_oracle: 403,
    ErrorKind.authority_mismatch: 403,
    ErrorKind.missing_signature: 403,
    ErrorKind.address_mismatch: 400,
    ErrorKind.invalid_string: 400,
    ErrorKind.insufficient_funds: 400,
    ErrorKind.invalid_instruction: 400,
}


def build_oracle_service(settings: Settings, secrets: OracleSecrets) -> OracleService:
    """Wire the production oracle: GitHub fetcher plus an HTTP ledger transport."""
    verifier = IdentityVerifier(
        GitHubProfileFetcher(token=secrets.github_token, timeout=settings.http_timeout)
    )
    ledger_transport = HttpLedger(settings.ledger_url, timeout=settings.http_timeout)
    return OracleService(verifier, ledger_transport, secrets.keypair, settings.program_id)


def build_store(settings: Settings) -> RegistryStore:
    return RegistryStore(
        program_id=settings.program_id,
        oracle_pubkey=settings.oracle_pubkey,
        accounts=FileAccounts(settings.ledger_dir),
    )


def _add_meta_routes(app: FastAPI, name: str) -> None:
    @app.get("/health", tags=["meta"])
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": name, "version": __version__}


async def _attestation_body_error_handler(
    request: Request, exc: RequestValidationError
) -> PlainTextResponse:
    """Answer a body that does not parse the way the service answers bad fields."""
    for error in exc.errors():
        fields = [part for part in error.get("loc", ()) if part != "body"]
        if fields:
            return PlainTextResponse(f"Invalid `{fields[0]}` request parameter", status_code=400)
    return PlainTextResponse("Malformed request body", status_code=400)


def create_oracle_app(service: Optional[OracleService] = None) -> FastAPI:
    """Create the oracle attestation app."""
    if service is None:
        service = build_oracle_service(Settings.from_env(), OracleSecrets.from_env())

    app = FastAPI(
        title="chainreg GitHub oracle",
        description="Attests GitHub identities and co-signs author registrations.",
        version=__version__,
    )
    app.state.oracle_service = service
    app.add_exception_handler(RequestValidationError, _attestation_body_error_handler)
    app.include_router(oracle.router)
    _add_meta_routes(app, "oracle")
    return app


async def _registry_error_handler(request: Request, exc: RegistryError) -> JSONResponse:
    return JSONResponse(
        status_code=_STATUS_BY_KIND.get(exc.kind, 400),
        content=ErrorResponse(kind=exc.kind.value, message=exc.message).model_dump(),
    )


def create_ledger_app(store: Optional[RegistryStore] = None) -> FastAPI:
    """Create the ledger node app serving a registry store."""
    if store is None:
        store = build_store(Settings.from_env())

    app = FastAPI(
        title="chainreg ledger node",
        description="Serves registry accounts and processes signed registry transactions.",
        version=__version__,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.store = store
    app.add_exception_handler(RegistryError, _registry_error_handler)
    app.include_router(ledger.router)
    _add_meta_routes(app, "ledger")
    return app
