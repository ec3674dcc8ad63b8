"""
Configuration models for the account comparison tool using Pydantic.

This module defines all the configuration models that validate and parse
the optional YAML configuration file, plus the run result models produced
by the reconciliation manager.
"""

from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from account_db_compare.core.models import AggregateStats, RecordError


class StoreConfig(BaseModel):
    """Configuration for the SQLite tables holding account rows."""

    archiver_table: str = "accounts"
    node_table: str = "accountsEntry"
    node_db_file_name: str = "shardeum.sqlite"
    id_column: str = "accountId"
    data_column: str = "data"
    timestamp_column: Optional[str] = "timestamp"

    @field_validator("archiver_table", "node_table", "id_column", "data_column", "timestamp_column")
    @classmethod
    def validate_identifier(cls, v):
        """Table and column names are interpolated into SQL, so keep them plain."""
        if v is None:
            return v
        if not v.replace("_", "").isalnum():
            raise ValueError(f"Invalid SQL identifier: {v}")
        return v


class ConcurrencyConfig(BaseModel):
    """Configuration for concurrency settings."""

    max_workers: int = Field(default=4, ge=1, le=32)


class RetryConfig(BaseModel):
    """Configuration for retry settings when opening a store."""

    max_attempts: int = Field(default=3, ge=1, le=10)
    retry_delay_seconds: float = Field(default=0.5, ge=0)


class LoggingConfig(BaseModel):
    """Configuration for logging settings."""

    level: str = Field(default="INFO")
    format: str = Field(default="text")  # "text" or "json"
    log_to_file: bool = Field(default=False)
    log_file_path: Optional[str] = None

    @field_validator("level")
    @classmethod
    def validate_level(cls, v):
        """Validate logging level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(
                f"Invalid logging level: {v}. Must be one of {valid_levels}"
            )
        return v.upper()

    @field_validator("format")
    @classmethod
    def validate_format(cls, v):
        """Validate logging format."""
        valid_formats = ["text", "json"]
        if v.lower() not in valid_formats:
            raise ValueError(
                f"Invalid logging format: {v}. Must be one of {valid_formats}"
            )
        return v.lower()


class ReportConfig(BaseModel):
    """Configuration for report output."""

    verbose: bool = False
    output_csv: Optional[Path] = None


class CompareSystemConfig(BaseModel):
    """Root configuration model for the comparison tool."""

    version: str = "1.0"
    archiver_db: Optional[Path] = None
    nodes_folder: Optional[Path] = None
    store: StoreConfig = Field(default_factory=StoreConfig)
    concurrency: ConcurrencyConfig = Field(default_factory=ConcurrencyConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)

    @field_validator("version")
    @classmethod
    def validate_version(cls, v):
        """Validate configuration version."""
        if v != "1.0":
            raise ValueError(f"Unsupported configuration version: {v}")
        return v


class NodeRunResult(BaseModel):
    """Model for a single node comparison pass."""

    node_name: str
    db_path: str
    status: str  # success, failed
    start_time: str
    end_time: str
    duration_seconds: Optional[float] = None
    error_message: Optional[str] = None
    stats: AggregateStats = Field(default_factory=AggregateStats)
    record_errors: List[RecordError] = Field(default_factory=list)


class RunSummary(BaseModel):
    """Model for the outcome of a whole comparison run."""

    run_id: str
    start_time: str
    end_time: Optional[str] = None
    duration: Optional[float] = None
    status: str  # completed, completed_with_failures
    archiver_accounts: int = 0
    archiver_unparsable: int = 0
    total_nodes: int = 0
    failed_nodes: List[str] = Field(default_factory=list)
    stats: AggregateStats = Field(default_factory=AggregateStats)
    node_stats: Dict[str, AggregateStats] = Field(default_factory=dict)
    summary: Optional[str] = None
