"""Tests for clients/vault_client.py - AppRole login and the database secret."""

from unittest.mock import patch

import pytest
from hvac.exceptions import Forbidden, InvalidPath

from clients.vault_client import (
    DATABASE_SECRET_PATH,
    DatabaseSecret,
    get_database_url,
    login,
    read_database_secret,
)

DATABASE_URL = "postgresql://invoicing@db.internal:5432/gst"


def _secret_response(**fields):
    return {"data": {"data": fields, "metadata": {"version": 3}}}


@pytest.fixture
def vault_env(monkeypatch):
    monkeypatch.setenv("VAULT_ADDR", "https://vault.internal:8200")
    monkeypatch.setenv("VAULT_ROLE_ID", "invoicing-role")
    monkeypatch.setenv("VAULT_SECRET_ID", "invoicing-secret")
    monkeypatch.delenv("VAULT_NAMESPACE", raising=False)


@pytest.fixture
def hvac_client(vault_env):
    with patch("clients.vault_client.hvac.Client") as client_cls:
        client = client_cls.return_value
        client.is_authenticated.return_value = True
        client.secrets.kv.v2.read_secret_version.return_value = _secret_response(url=DATABASE_URL)
        yield client


@pytest.fixture(autouse=True)
def clear_url_cache():
    get_database_url.cache_clear()
    yield
    get_database_url.cache_clear()


class TestLogin:
    """AppRole login from VAULT_* environment variables."""

    @pytest.mark.parametrize("name", ["VAULT_ADDR", "VAULT_ROLE_ID", "VAULT_SECRET_ID"])
    def test_missing_setting_is_named(self, vault_env, monkeypatch, name):
        monkeypatch.delenv(name)

        with pytest.raises(ValueError, match=name):
            login()

    def test_logs_in_with_approle(self, hvac_client):
        assert login() is hvac_client

        hvac_client.auth.approle.login.assert_called_once_with(
            role_id="invoicing-role", secret_id="invoicing-secret"
        )

    def test_namespace_passed_through(self, vault_env, monkeypatch):
        monkeypatch.setenv("VAULT_NAMESPACE", "finance")

        with patch("clients.vault_client.hvac.Client") as client_cls:
            client_cls.return_value.is_authenticated.return_value = True
            login()

        client_cls.assert_called_once_with(url="https://vault.internal:8200", namespace="finance")

    def test_rejected_credentials(self, hvac_client):
        hvac_client.auth.approle.login.side_effect = Forbidden("invalid role id")

        with pytest.raises(PermissionError, match="AppRole login failed"):
            login()

    def test_login_without_valid_token(self, hvac_client):
        hvac_client.is_authenticated.return_value = False

        with pytest.raises(PermissionError, match="valid token"):
            login()


class TestReadDatabaseSecret:
    """Reading gst_invoicing/database."""

    def test_reads_database_path(self, hvac_client):
        secret = read_database_secret(hvac_client)

        assert secret == DatabaseSecret(url=DATABASE_URL)
        hvac_client.secrets.kv.v2.read_secret_version.assert_called_once_with(
            path=DATABASE_SECRET_PATH, raise_on_deleted_version=True
        )

    def test_extra_fields_ignored(self, hvac_client):
        hvac_client.secrets.kv.v2.read_secret_version.return_value = _secret_response(
            url=DATABASE_URL, rotated_by="ops"
        )

        assert read_database_secret(hvac_client).url == DATABASE_URL

    def test_missing_secret(self, hvac_client):
        hvac_client.secrets.kv.v2.read_secret_version.side_effect = InvalidPath()

        with pytest.raises(PermissionError, match="does not exist"):
            read_database_secret(hvac_client)

    def test_forbidden_secret(self, hvac_client):
        hvac_client.secrets.kv.v2.read_secret_version.side_effect = Forbidden()

        with pytest.raises(PermissionError, match="Not allowed"):
            read_database_secret(hvac_client)

    @pytest.mark.parametrize("fields", [
        {},
        {"password": "hunter2"},
        {"url": ""},
        {"url": "mysql://invoicing@db/gst"},
    ])
    def test_unusable_url_field(self, hvac_client, fields):
        hvac_client.secrets.kv.v2.read_secret_version.return_value = _secret_response(**fields)

        with pytest.raises(ValueError, match="'url' field"):
            read_database_secret(hvac_client)


class TestGetDatabaseUrl:

    def test_read_once_per_process(self, hvac_client):
        assert get_database_url() == DATABASE_URL
        assert get_database_url() == DATABASE_URL

        hvac_client.auth.approle.login.assert_called_once()
        hvac_client.secrets.kv.v2.read_secret_version.assert_called_once()

    def test_failure_is_not_cached(self, hvac_client):
        hvac_client.secrets.kv.v2.read_secret_version.side_effect = [
            InvalidPath(),
            _secret_response(url=DATABASE_URL),
        ]

        with pytest.raises(PermissionError):
            get_database_url()

        assert get_database_url() == DATABASE_URL
