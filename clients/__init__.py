# Infrastructure clients
from clients.vault_client import (
    DatabaseSecret,
    get_database_url,
)
from clients.postgres_client import PostgresClient, jsonb
