"""Shared fixtures: a registry store, an oracle, and funded wallets."""

import pytest

from chainreg.client.oracle import LocalOracle
from chainreg.client.registry_client import RegistryClient
from chainreg.client.transport import LocalLedger
from chainreg.crypto.keys import Keypair, Pubkey
from chainreg.oracle.service import OracleService
from chainreg.oracle.verifier import IdentityVerifier, proof_string
from chainreg.registry.store import LAMPORTS_PER_SOL, RegistryStore


class FakeProfiles:
    """Profile fetcher backed by a dict of handle -> bio."""

    def __init__(self):
        self.bios: dict[str, str] = {}
        self.calls: list[str] = []

    def prove(self, handle: str, key) -> None:
        self.bios[handle] = f"Open source person. {proof_string(str(key))}"

    def fetch_profile(self, handle: str) -> str:
        self.calls.append(handle)
        return self.bios.get(handle, "")


@pytest.fixture
def program_id() -> Pubkey:
    return Keypair.from_seed(bytes([7]) * 32).pubkey


@pytest.fixture
def oracle_keypair() -> Keypair:
    return Keypair.from_seed(bytes([9]) * 32)


@pytest.fixture
def store(program_id, oracle_keypair) -> RegistryStore:
    return RegistryStore(program_id=program_id, oracle_pubkey=oracle_keypair.pubkey)


@pytest.fixture
def fund(store):
    """Return a helper that creates a keypair holding one SOL."""

    def _fund(keypair: Keypair | None = None) -> Keypair:
        keypair = keypair or Keypair.generate()
        store.airdrop(keypair.pubkey, LAMPORTS_PER_SOL)
        return keypair

    return _fund


@pytest.fixture
def wallet(fund) -> Keypair:
    return fund()


@pytest.fixture
def profiles() -> FakeProfiles:
    return FakeProfiles()


@pytest.fixture
def oracle_service(profiles, store, oracle_keypair, program_id) -> OracleService:
    return OracleService(
        verifier=IdentityVerifier(profiles),
        ledger=LocalLedger(store),
        oracle_keypair=oracle_keypair,
        program_id=program_id,
    )


@pytest.fixture
def client(store, oracle_service, wallet, program_id) -> RegistryClient:
    return RegistryClient(
        ledger=LocalLedger(store),
        oracle=LocalOracle(oracle_service),
        wallet=wallet,
        program_id=program_id,
    )
