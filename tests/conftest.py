import json
import sqlite3
from pathlib import Path

import pytest
import structlog

from account_db_compare.audit.logger import CompareLogger
from account_db_compare.config.models import (
    CompareSystemConfig,
    ConcurrencyConfig,
    LoggingConfig,
    RetryConfig,
)


def _regular(balance="0", nonce="0", account_hash="h0", timestamp=1700000000000):
    account = {
        "codeHash": {"dataType": "bh", "value": "c5d2460186f7233c927e7db2dcc703c0"},
        "storageRoot": {"dataType": "bh", "value": "56e81f171bcc55a6ff8345e692c0f86e"},
    }
    if balance is not None:
        account["balance"] = {"dataType": "bi", "value": balance}
    if nonce is not None:
        account["nonce"] = {"dataType": "bi", "value": nonce}
    return json.dumps(
        {
            "account": account,
            "accountType": 0,
            "ethAddress": "0x1234",
            "hash": account_hash,
            "timestamp": timestamp,
        }
    )


def _special(nonce=7, account_type=13, name="Foundation", **extra):
    payload = {"accountType": account_type, "name": name, **extra}
    if nonce is not None:
        payload["nonce"] = nonce
    return json.dumps(payload)


def _create_store(path: Path, table: str, rows) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    connection = sqlite3.connect(path)
    try:
        connection.execute(
            f"CREATE TABLE {table} (accountId TEXT PRIMARY KEY, data TEXT, timestamp INTEGER)"
        )
        connection.executemany(
            f"INSERT INTO {table} (accountId, data, timestamp) VALUES (?, CAST(? AS TEXT), ?)",
            [(account_id, data, 1700000000000) for account_id, data in rows],
        )
        connection.commit()
    finally:
        connection.close()
    return path


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.fixture
def regular_payload():
    """Builder for regular account JSON with tagged hex balance/nonce."""
    return _regular


@pytest.fixture
def special_payload():
    """Builder for special account JSON with a plain decimal nonce."""
    return _special


@pytest.fixture
def make_archiver(tmp_path):
    """Create an archiver database holding (account_id, data) rows."""

    def _make(rows, name="archiver.sqlite3"):
        return _create_store(tmp_path / name, "accounts", rows)

    return _make


@pytest.fixture
def nodes_folder(tmp_path) -> Path:
    folder = tmp_path / "instances"
    folder.mkdir()
    return folder


@pytest.fixture
def make_node(nodes_folder):
    """Create a node database at <instances>/<node>/db/shardeum.sqlite."""

    def _make(node_name, rows):
        return _create_store(
            nodes_folder / node_name / "db" / "shardeum.sqlite", "accountsEntry", rows
        )

    return _make


@pytest.fixture
def config() -> CompareSystemConfig:
    return CompareSystemConfig(
        concurrency=ConcurrencyConfig(max_workers=2),
        retry=RetryConfig(max_attempts=1, retry_delay_seconds=0),
    )


@pytest.fixture
def logger() -> CompareLogger:
    return CompareLogger("tests", LoggingConfig(level="DEBUG"))
