"""
SQLite operations utility for reading account stores.

This module provides utilities for opening the archiver and node databases
read-only, streaming their account rows and discovering node databases under
a folder of node instances.
"""

import sqlite3
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple, Union

from pydantic import BaseModel

from account_db_compare.audit.logger import CompareLogger
from account_db_compare.config.models import RetryConfig, StoreConfig
from account_db_compare.core.exceptions import (
    ArchiverUnavailableError,
    NodesFolderNotFoundError,
    NodeStoreError,
)
from account_db_compare.utils import retry_with_logging

# (account_id, raw json payload, timestamp)
AccountRow = Tuple[str, Union[str, bytes], Optional[int]]


class NodeStore(BaseModel):
    """A discovered node database."""

    node_name: str
    db_path: Path


class SqliteOperations:
    """Utility class for SQLite account store operations."""

    def __init__(
        self,
        store_config: Optional[StoreConfig] = None,
        retry: Optional[RetryConfig] = None,
        logger: Optional[CompareLogger] = None,
    ):
        """
        Initialize SQLite operations.

        Args:
            store_config: Table, column and file name settings
            retry: Retry configuration used when opening databases
            logger: Optional logger instance
        """
        self.store_config = store_config or StoreConfig()
        self.retry = retry or RetryConfig(max_attempts=1, retry_delay_seconds=0)
        self.logger = logger

    def open_connection(self, db_path: Union[str, Path]) -> sqlite3.Connection:
        """
        Open a database read-only, retrying while it is locked.

        A missing file raises instead of silently creating an empty database.

        Args:
            db_path: Path to the SQLite file

        Returns:
            Open sqlite3 connection
        """
        uri = f"{Path(db_path).resolve().as_uri()}?mode=ro"

        @retry_with_logging(self.retry, self.logger)
        def open_database():
            connection = sqlite3.connect(uri, uri=True)
            # Text columns arrive as bytes and are decoded per row by _as_text
            connection.text_factory = bytes
            try:
                connection.execute("SELECT 1 FROM sqlite_master LIMIT 1").fetchall()
            except sqlite3.Error:
                connection.close()
                raise
            return connection

        return open_database()

    def _select_sql(self, table: str) -> str:
        cfg = self.store_config
        timestamp_expr = cfg.timestamp_column or "NULL"
        return f"SELECT {cfg.id_column}, {cfg.data_column}, {timestamp_expr} FROM {table}"

    def read_account_rows(self, db_path: Union[str, Path], table: str) -> Iterator[AccountRow]:
        """
        Stream account rows from a table.

        The connection is closed once the iterator is exhausted or discarded.

        Args:
            db_path: Path to the SQLite file
            table: Table holding account rows

        Yields:
            (account_id, data, timestamp) tuples
        """
        connection = self.open_connection(db_path)
        try:
            cursor = connection.execute(self._select_sql(table))
            for account_id, data, timestamp in cursor:
                yield (
                    _as_account_id(account_id),
                    _as_text(data),
                    _as_int(timestamp),
                )
        finally:
            connection.close()

    def load_archiver_rows(self, db_path: Union[str, Path]) -> List[AccountRow]:
        """
        Read every archiver row.

        Args:
            db_path: Path to the archiver database

        Returns:
            List of account rows

        Raises:
            ArchiverUnavailableError: If the database is missing or unreadable
        """
        path = Path(db_path)
        if not path.is_file():
            raise ArchiverUnavailableError(path, "file does not exist")
        try:
            rows = list(self.read_account_rows(path, self.store_config.archiver_table))
        except sqlite3.Error as e:
            raise ArchiverUnavailableError(path, str(e)) from e

        if self.logger:
            self.logger.info(f"Loaded {len(rows)} rows from archiver database {path}")
        return rows

    def iter_node_rows(self, node: NodeStore) -> Iterator[AccountRow]:
        """
        Stream rows from one node database.

        Raises:
            NodeStoreError: If the database cannot be opened or read
        """
        try:
            yield from self.read_account_rows(node.db_path, self.store_config.node_table)
        except sqlite3.Error as e:
            raise NodeStoreError(node.node_name, node.db_path, str(e)) from e

    def discover_node_stores(self, nodes_folder: Union[str, Path]) -> List[NodeStore]:
        """
        Recursively find node databases under a folder of node instances.

        Node databases live at ``<instance>/<subdir>/<db file>``; the instance
        folder names the node. Name clashes fall back to the relative path.

        Args:
            nodes_folder: Root folder holding node instance folders

        Returns:
            Node stores sorted by path

        Raises:
            NodesFolderNotFoundError: If the folder does not exist
        """
        root = Path(nodes_folder)
        if not root.is_dir():
            raise NodesFolderNotFoundError(root)

        db_paths = sorted(
            path for path in root.rglob(self.store_config.node_db_file_name) if path.is_file()
        )

        named: List[Tuple[str, Path, str]] = []
        name_counts: Dict[str, int] = {}
        for db_path in db_paths:
            folders = db_path.relative_to(root).parts[:-1]
            name = extract_node_name(db_path, root)
            named.append((name, db_path, "/".join(folders) or root.name or "unknown"))
            name_counts[name] = name_counts.get(name, 0) + 1

        stores = [
            NodeStore(
                node_name=relative if name_counts[name] > 1 else name,
                db_path=db_path,
            )
            for name, db_path, relative in named
        ]

        if self.logger:
            self.logger.info(f"Discovered {len(stores)} node databases under {root}")
        return stores


def extract_node_name(db_path: Path, root: Optional[Path] = None) -> str:
    """
    Derive a human-readable node name from a database path.

    Uses the grandparent folder (``<instance>/db/shardeum.sqlite``), or the
    parent folder when the database sits directly inside an instance folder
    under ``root``.
    """
    if root is not None:
        folders = db_path.relative_to(root).parts[:-1]
        if len(folders) >= 2:
            return folders[-2]
        if folders:
            return folders[0]
        return root.name or "unknown"
    return db_path.parent.parent.name or db_path.parent.name or "unknown"


def _as_account_id(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _as_text(value):
    # Undecodable payloads stay bytes and fail later as unparsable records
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError:
            return value
    return value


def _as_int(value) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
