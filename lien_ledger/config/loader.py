"""
Configuration management and loading.

Handles application settings from a YAML file and environment variables.
"""

import logging
import os
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Dict, Optional

import yaml

from lien_ledger.core.bills import DEFAULT_FLAT_REDUCTION_RATE

CONFIG_ENV_VAR = "LIEN_LEDGER_CONFIG"
DEFAULT_DB_PATH = "lien_ledger.db"
DEFAULT_INVOICE_DUE_DAYS = 30
DEFAULT_LOG_LEVEL = "WARNING"

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class StorageConfig:
    """Where documents are persisted."""
    db_path: str = DEFAULT_DB_PATH

    def __post_init__(self):
        """Validate the database path is not blank."""
        if not self.db_path or not self.db_path.strip():
            raise ValueError("db_path cannot be empty")


@dataclass(frozen=True)
class BillingConfig:
    """Billing policy settings."""
    flat_reduction_rate: Decimal = DEFAULT_FLAT_REDUCTION_RATE
    invoice_due_days: int = DEFAULT_INVOICE_DUE_DAYS

    def __post_init__(self):
        """Validate billing values."""
        if self.flat_reduction_rate < 0 or self.flat_reduction_rate > 1:
            raise ValueError("flat_reduction_rate must be between 0 and 1")
        if self.invoice_due_days <= 0:
            raise ValueError("invoice_due_days must be > 0")


@dataclass(frozen=True)
class AppConfig:
    """Complete application configuration."""
    storage: StorageConfig = field(default_factory=StorageConfig)
    billing: BillingConfig = field(default_factory=BillingConfig)
    log_level: str = DEFAULT_LOG_LEVEL

    @property
    def log_level_number(self) -> int:
        return getattr(logging, self.log_level)


def resolve_config_path(path: Optional[str] = None) -> Optional[str]:
    """Pick the config path from the argument or the environment."""
    return path or os.environ.get(CONFIG_ENV_VAR) or None


def load_config(path: Optional[str] = None) -> AppConfig:
    """Load and validate application configuration from a YAML file.

    Every section is optional, but unknown keys are rejected so a typo
    never silently falls back to a default rate.

    Args:
        path: Path to YAML configuration file, or None for defaults

    Returns:
        Validated AppConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    if path is None:
        return AppConfig()

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")

    allowed_top_keys = {'storage', 'billing', 'log_level'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    storage = _parse_storage_config(raw_config.get('storage', {}))
    billing = _parse_billing_config(raw_config.get('billing', {}))

    log_level = raw_config.get('log_level', DEFAULT_LOG_LEVEL)
    if not isinstance(log_level, str) or log_level.upper() not in VALID_LOG_LEVELS:
        raise ValueError(f"'log_level' must be one of: {list(VALID_LOG_LEVELS)}")

    return AppConfig(
        storage=storage,
        billing=billing,
        log_level=log_level.upper()
    )


def _parse_storage_config(data: Dict) -> StorageConfig:
    """Parse and validate the storage section."""
    if not isinstance(data, dict):
        raise ValueError("'storage' must be a dictionary")

    unknown_keys = set(data.keys()) - {'db_path'}
    if unknown_keys:
        raise ValueError(f"Unknown keys in storage: {unknown_keys}")

    db_path = data.get('db_path', DEFAULT_DB_PATH)
    if not isinstance(db_path, str):
        raise ValueError("'db_path' in storage must be a string")

    return StorageConfig(db_path=db_path)


def _parse_billing_config(data: Dict) -> BillingConfig:
    """Parse and validate the billing section.

    Args:
        data: Billing configuration data

    Returns:
        Validated BillingConfig

    Raises:
        ValueError: If configuration is invalid
    """
    if not isinstance(data, dict):
        raise ValueError("'billing' must be a dictionary")

    allowed_keys = {'flat_reduction_rate', 'invoice_due_days'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in billing: {unknown_keys}")

    rate = data.get('flat_reduction_rate', DEFAULT_FLAT_REDUCTION_RATE)
    if isinstance(rate, bool) or not isinstance(rate, (int, float, Decimal)):
        raise ValueError("'flat_reduction_rate' in billing must be a number")
    if not 0 <= rate <= 1:
        raise ValueError("'flat_reduction_rate' in billing must be between 0 and 1")

    due_days = data.get('invoice_due_days', DEFAULT_INVOICE_DUE_DAYS)
    if isinstance(due_days, bool) or not isinstance(due_days, int) or due_days <= 0:
        raise ValueError("'invoice_due_days' in billing must be a positive integer")

    return BillingConfig(
        flat_reduction_rate=Decimal(str(rate)),
        invoice_due_days=due_days
    )
