"""Tests for the chainreg CLI."""

import pytest
from click.testing import CliRunner

from chainreg.cli import main
from chainreg.client.registry_client import RegistryClient
from chainreg.client.transport import LocalLedger


@pytest.fixture
def run(client):
    runner = CliRunner()

    def _run(*args):
        return runner.invoke(main, list(args), obj={"client": client})

    return _run


def test_publish_and_info(run, wallet):
    result = run("publish", "@acme/tool")
    assert result.exit_code == 0, result.output
    assert "Published @acme/tool" in result.output

    result = run("info", "@acme/tool")
    assert result.exit_code == 0, result.output
    assert "Scope: @acme" in result.output
    assert "Name: tool" in result.output
    assert str(wallet.pubkey) in result.output


def test_info_missing_package(run):
    result = run("info", "@acme/nothing")
    assert result.exit_code == 1
    assert "NotFound" in result.output


def test_bad_package_name(run):
    result = run("publish", "acme")
    assert result.exit_code == 2


def test_register_author_unregister(run, profiles, wallet):
    profiles.prove("carol", wallet.pubkey)

    result = run("register", "carol")
    assert result.exit_code == 0, result.output
    assert "Registered author" in result.output

    result = run("author", "carol")
    assert result.exit_code == 0, result.output
    assert "carol" in result.output

    result = run("unregister", "carol")
    assert result.exit_code == 0, result.output
    assert "Unregistered author" in result.output


def test_register_without_proof(run):
    result = run("register", "dave")
    assert result.exit_code == 1
    assert "Make sure you added" in result.output


def test_airdrop(run):
    result = run("airdrop", "100")
    assert result.exit_code == 0, result.output
    assert "Balance:" in result.output

    assert run("airdrop", "0").exit_code == 2


def test_version():
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output


class _UndecodableLedger(LocalLedger):
    def read_record(self, address):
        raise ValueError("Unknown record discriminator.")


def test_unreadable_record_is_a_failure(store, wallet, program_id):
    client = RegistryClient(_UndecodableLedger(store), None, wallet, program_id)
    result = CliRunner().invoke(main, ["info", "@acme/tool"], obj={"client": client})
    assert result.exit_code == 1
    assert "discriminator" in result.output
    assert result.exception is None or isinstance(result.exception, SystemExit)
