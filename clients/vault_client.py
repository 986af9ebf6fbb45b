"""
Database credentials from HashiCorp Vault.

The service keeps exactly one secret in Vault: the PostgreSQL connection URL,
stored as the ``url`` field of the KV v2 secret ``gst_invoicing/database``.
The process logs in with AppRole, reads the secret once and reuses the URL
for the lifetime of the process.

Environment:
    VAULT_ADDR        Vault server address (required)
    VAULT_ROLE_ID     AppRole role id (required)
    VAULT_SECRET_ID   AppRole secret id (required)
    VAULT_NAMESPACE   Vault Enterprise namespace (optional)
"""

import logging
import os
from functools import lru_cache

import hvac
from hvac.exceptions import Forbidden, InvalidPath, Unauthorized, VaultError
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DATABASE_SECRET_PATH = "gst_invoicing/database"

_REQUIRED_ENV = ("VAULT_ADDR", "VAULT_ROLE_ID", "VAULT_SECRET_ID")


class DatabaseSecret(BaseModel):
    """Fields of the database secret. Extra fields are ignored."""

    url: str = Field(..., min_length=1, pattern=r"^postgres(ql)?://")


def login() -> hvac.Client:
    """
    Return an hvac client authenticated with the process AppRole.

    Raises:
        ValueError: If a required VAULT_* variable is unset
        PermissionError: If Vault rejects the AppRole credentials
    """
    missing = [name for name in _REQUIRED_ENV if not os.getenv(name)]
    if missing:
        raise ValueError(f"Vault is not configured, missing: {', '.join(missing)}")

    client = hvac.Client(
        url=os.environ["VAULT_ADDR"],
        namespace=os.getenv("VAULT_NAMESPACE") or None,
    )
    try:
        client.auth.approle.login(
            role_id=os.environ["VAULT_ROLE_ID"],
            secret_id=os.environ["VAULT_SECRET_ID"],
        )
    except VaultError as e:
        raise PermissionError(f"Vault AppRole login failed: {e}") from e

    if not client.is_authenticated():
        raise PermissionError("Vault AppRole login did not produce a valid token")

    return client


def read_database_secret(client: hvac.Client) -> DatabaseSecret:
    """
    Read and validate the database secret.

    Raises:
        PermissionError: If the secret is missing or the role may not read it
        ValueError: If the secret has no usable ``url`` field
    """
    try:
        response = client.secrets.kv.v2.read_secret_version(
            path=DATABASE_SECRET_PATH,
            raise_on_deleted_version=True,
        )
    except InvalidPath as e:
        raise PermissionError(f"Vault secret '{DATABASE_SECRET_PATH}' does not exist") from e
    except (Unauthorized, Forbidden) as e:
        raise PermissionError(f"Not allowed to read Vault secret '{DATABASE_SECRET_PATH}'") from e

    try:
        return DatabaseSecret.model_validate(response["data"]["data"])
    except ValidationError as e:
        raise ValueError(
            f"Vault secret '{DATABASE_SECRET_PATH}' needs a postgresql:// 'url' field"
        ) from e


@lru_cache(maxsize=1)
def get_database_url() -> str:
    """PostgreSQL URL for this process, read from Vault on first call."""
    secret = read_database_secret(login())
    logger.info(f"Database URL loaded from Vault secret {DATABASE_SECRET_PATH}")
    return secret.url
