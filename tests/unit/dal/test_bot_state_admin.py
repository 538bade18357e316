"""Tests for the bot-state admin CLI."""

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from common.errors.state_errors import StateStoreProvisioningError
from dal import factory
from dal.bot_state_admin import main


def test_no_command_prints_help(capsys):
    """Running without a subcommand shows usage."""
    main([])
    assert "ensure" in capsys.readouterr().out


def test_ensure_provisions_container(caplog):
    """ensure creates the configured database and collection."""
    with caplog.at_level(logging.INFO):
        main(["ensure"])

    store = factory.get_bot_data_store()
    assert store.initialized
    assert store.client.count_collections("botdb") == 1
    assert any("Container ready: botdb/botcollection" in r.message for r in caplog.records)


def test_drop_missing_database_is_noop(caplog):
    """drop on a fresh backend reports nothing to delete."""
    with caplog.at_level(logging.INFO):
        main(["drop"])

    assert any("did not exist" in r.message for r in caplog.records)


def test_invalid_configuration_exits_nonzero(monkeypatch):
    """Configuration errors exit with status 1."""
    monkeypatch.setenv("BOT_STATE_STORE_PROVIDER", "cosmos")

    with pytest.raises(SystemExit) as excinfo:
        main(["ensure"])

    assert excinfo.value.code == 1


def test_invalid_init_timeout_exits_nonzero(monkeypatch):
    """A non-positive init timeout is rejected."""
    monkeypatch.setenv("BOT_STATE_INIT_TIMEOUT_SECONDS", "0")

    with pytest.raises(SystemExit):
        main(["ensure"])


def _fake_store():
    store = MagicMock()
    store.client.close = AsyncMock()
    store.initialize_async = AsyncMock()
    store.delete_container_if_exists_async = AsyncMock(return_value=True)
    return store


@pytest.mark.parametrize("command", ["ensure", "drop"])
def test_commands_close_client(command):
    """Each command closes the document client before the loop exits."""
    store = _fake_store()

    with patch("dal.bot_state_admin.get_bot_data_store", return_value=store):
        main([command])

    store.client.close.assert_awaited_once()


def test_client_closed_when_command_fails():
    """The client is closed even when provisioning fails."""
    store = _fake_store()
    store.initialize_async.side_effect = StateStoreProvisioningError("denied", status_code=403)

    with patch("dal.bot_state_admin.get_bot_data_store", return_value=store):
        with pytest.raises(SystemExit):
            main(["ensure"])

    store.client.close.assert_awaited_once()
