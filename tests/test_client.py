"""End-to-end tests for the registry client."""

import pytest
from fastapi.testclient import TestClient

from chainreg.client.oracle import HttpOracle, OracleRejected
from chainreg.client.registry_client import RegistryClient, parse_package_name
from chainreg.client.transport import HttpLedger, LocalLedger
from chainreg.crypto.derivation import author_address
from chainreg.crypto.keys import Keypair
from chainreg.oracle.service import OracleService
from chainreg.oracle.verifier import IdentityVerifier
from chainreg.registry.errors import AlreadyExists, AuthorityMismatch, NotFound
from chainreg.errors import LedgerStateError
from chainreg.registry.models import AuthorRecord, BoundedString
from chainreg.registry.store import LAMPORTS_PER_SOL
from chainreg.web.app import create_ledger_app, create_oracle_app


def test_parse_package_name():
    assert parse_package_name("@acme/tool") == ("acme", "tool")
    assert parse_package_name("acme/tool") == ("acme", "tool")
    for bad in ("acme", "@acme/", "@/tool", "@acme/tool/extra"):
        with pytest.raises(ValueError):
            parse_package_name(bad)


def test_register_and_unregister(client, profiles, store, program_id, wallet):
    profiles.prove("carol", wallet.pubkey)

    record = client.register("carol")
    assert isinstance(record, AuthorRecord)
    assert str(record.name) == "carol"
    assert record.authority == wallet.pubkey
    assert client.author("carol") == record
    assert client.balance() < LAMPORTS_PER_SOL

    address = client.unregister("carol")
    assert address == author_address("carol", program_id)[0]
    with pytest.raises(NotFound):
        client.author("carol")
    assert client.balance() == LAMPORTS_PER_SOL


def test_register_without_proof(client, program_id):
    with pytest.raises(OracleRejected) as exc_info:
        client.register("dave")
    assert exc_info.value.status_code == 401
    assert "Solana Wallet:" in exc_info.value.text
    with pytest.raises(NotFound):
        client.author("dave")


def test_register_with_claimed_key(client, profiles, wallet):
    claimed = Keypair.generate().pubkey
    profiles.prove("erin", claimed)
    record = client.register("erin", pubkey=str(claimed))
    assert record.authority == wallet.pubkey


def test_register_taken_name(client, profiles, wallet):
    profiles.prove("carol", wallet.pubkey)
    client.register("carol")
    with pytest.raises(OracleRejected) as exc_info:
        client.register("carol")
    assert exc_info.value.status_code == 500
    assert "AlreadyExists" in exc_info.value.text


def test_unregister_by_someone_else(client, profiles, wallet, fund):
    profiles.prove("carol", wallet.pubkey)
    client.register("carol")

    intruder = RegistryClient(client.ledger, client.oracle, fund(), client.program_id)
    with pytest.raises(AuthorityMismatch):
        intruder.unregister("carol")
    assert client.author("carol").authority == wallet.pubkey


def test_publish_and_info(client, wallet):
    record = client.publish("acme", "tool")
    assert record.qualified_name == "@acme/tool"
    assert client.info("acme", "tool") == record
    with pytest.raises(AlreadyExists):
        client.publish("acme", "tool")
    with pytest.raises(NotFound):
        client.info("acme", "other")


def test_author_lookup_rejects_package_records(client, program_id):
    # "a/b" as an author name does not collide with package a/b
    client.publish("a", "b")
    with pytest.raises(NotFound):
        client.author("a/b")


def test_full_flow_over_http(store, profiles, oracle_keypair, program_id):
    ledger_api = TestClient(create_ledger_app(store))
    service = OracleService(
        IdentityVerifier(profiles),
        HttpLedger(client=ledger_api),
        oracle_keypair,
        program_id,
    )
    oracle_api = TestClient(create_oracle_app(service))

    wallet = Keypair.generate()
    client = RegistryClient(
        ledger=HttpLedger(client=ledger_api),
        oracle=HttpOracle("/", client=oracle_api),
        wallet=wallet,
        program_id=program_id,
    )
    client.airdrop(LAMPORTS_PER_SOL)
    profiles.prove("carol", wallet.pubkey)

    record = client.register("carol")
    assert record.authority == wallet.pubkey
    client.publish("carol", "tool")

    client.unregister("carol")
    with pytest.raises(NotFound):
        client.author("carol")
    assert client.info("carol", "tool").authority == wallet.pubkey

    with pytest.raises(OracleRejected) as exc_info:
        client.register("dave")
    assert exc_info.value.status_code == 401


class _MisreadLedger(LocalLedger):
    """Ledger whose reads return a fixed record or fail to decode."""

    def __init__(self, store, record=None):
        super().__init__(store)
        self.record = record

    def read_record(self, address):
        if self.record is None:
            raise ValueError("Unknown record discriminator.")
        return self.record


def test_unusable_ledger_state_is_reported(store, wallet, program_id):
    author = AuthorRecord(bump=1, name=BoundedString.from_str("carol"), authority=wallet.pubkey)

    wrong_type = RegistryClient(_MisreadLedger(store, author), None, wallet, program_id)
    with pytest.raises(LedgerStateError, match="expected PackageRecord"):
        wrong_type.info("acme", "tool")

    undecodable = RegistryClient(_MisreadLedger(store), None, wallet, program_id)
    with pytest.raises(LedgerStateError, match="no readable record"):
        undecodable.author("carol")


def test_unregister_reports_surviving_record(store, wallet, program_id, profiles, client):
    profiles.prove("carol", wallet.pubkey)
    record = client.register("carol")

    class _StaleLedger(LocalLedger):
        def read_record(self, address):
            return record

    stale = RegistryClient(_StaleLedger(store), None, wallet, program_id)
    with pytest.raises(LedgerStateError, match="still exists"):
        stale.unregister("carol")
