"""Tests for the command line interface."""

import json

import pytest
from click.testing import CliRunner

from shiptrack import __version__, cli
from shiptrack.service import ShipmentService
from shiptrack.storage import create_store


@pytest.fixture
def runner(settings, monkeypatch):
    monkeypatch.setattr(cli, "load_settings", lambda: settings)
    monkeypatch.setattr(cli, "setup_logging", lambda settings=None: None)
    return CliRunner()


@pytest.fixture
def existing(settings, shipment_payload):
    store = create_store(settings)
    try:
        return ShipmentService(store).create_shipment(shipment_payload)
    finally:
        store.close()


def test_version(runner):
    result = runner.invoke(cli.main, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.output


class TestShipmentCommands:

    def test_create_from_stdin(self, runner, shipment_payload):
        result = runner.invoke(cli.main, ["--no-email", "shipments", "create", "-"], input=json.dumps(shipment_payload))

        assert result.exit_code == 0
        assert "Shipment created: TRANS" in result.output

    def test_create_rejects_bad_json(self, runner):
        result = runner.invoke(cli.main, ["--no-email", "shipments", "create", "-"], input="{nope")

        assert result.exit_code == 1
        assert "Invalid JSON" in result.output

    def test_list(self, runner, existing):
        result = runner.invoke(cli.main, ["shipments", "list"])

        assert result.exit_code == 0
        assert existing.tracking_id in result.output
        assert "Kwame Mensah" in result.output

    def test_list_empty(self, runner):
        result = runner.invoke(cli.main, ["shipments", "list", "--status", "delivered"])

        assert result.exit_code == 0
        assert "No shipments found." in result.output

    def test_show(self, runner, existing):
        result = runner.invoke(cli.main, ["shipments", "show", existing.tracking_id])

        assert result.exit_code == 0
        assert "Status: Pending" in result.output
        assert "Shipment created" in result.output

    def test_status_change(self, runner, existing):
        result = runner.invoke(
            cli.main,
            ["--no-email", "shipments", "status", existing.id, "in transit", "--location", "Cotonou"],
        )

        assert result.exit_code == 0
        assert "is now In transit" in result.output

    def test_invalid_status_change(self, runner, existing):
        result = runner.invoke(cli.main, ["--no-email", "shipments", "status", existing.id, "delivered"])

        assert result.exit_code == 1
        assert "Cannot change status" in result.output

    def test_delete(self, runner, existing):
        result = runner.invoke(cli.main, ["shipments", "delete", existing.id, "--yes"])
        assert result.exit_code == 0

        result = runner.invoke(cli.main, ["shipments", "delete", existing.id, "--yes"])
        assert result.exit_code == 1
        assert "Shipment not found" in result.output


class TestMailCommands:

    def test_templates(self, runner):
        result = runner.invoke(cli.main, ["mail", "templates"])

        assert result.exit_code == 0
        assert "Available templates (3)" in result.output
        assert "status_update" in result.output

    def test_test_email_without_providers(self, runner):
        result = runner.invoke(cli.main, ["mail", "test", "ops@example.com"])

        assert result.exit_code == 1
        assert "No email providers configured" in result.output
