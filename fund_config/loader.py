"""
Configuration Loader (``fund_config.loader``).

Responsibility
--------------
Loads YAML documents and parses them into the frozen dataclasses of
``fund_config.schema``: the default chart seed and ledger settings files.

Architecture position
---------------------
**Config layer** -- sits above the kernel models (it reuses their enums)
and below ``fund_modules``.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; required fields never get silent defaults.
* Every parsed object is a frozen dataclass.
* ``compute_checksum`` is a deterministic SHA-256 of canonical JSON.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown account type or section  -> ``ValueError`` from the enum.
* Duplicate account number in a chart  -> ``ValueError``.

Audit relevance
---------------
The chart checksum is logged whenever a chart is seeded, so auditors can
tie an organization's accounts to an exact seed version.
"""

from __future__ import annotations

import hashlib
import json
import os
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from fund_config.schema import AccountSeed, ChartSeed, LedgerSettings
from fund_kernel.models.account import (
    SECTIONS_BY_TYPE,
    AccountType,
    NetAssetClass,
    NormalBalance,
    StatementSection,
)

DATABASE_URL_ENV = "FUND_LEDGER_DATABASE_URL"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_account_seed(data: dict[str, Any]) -> AccountSeed:
    """
    Parse one ``accounts:`` item.

    Raises:
        KeyError: if number, name or type is missing.
        ValueError: if the section does not belong to the account type.
    """
    account_type = AccountType(data["type"])
    section = StatementSection(data["section"])
    if section not in SECTIONS_BY_TYPE[account_type]:
        raise ValueError(
            f"Account {data['number']}: section {section.value!r} "
            f"is not valid for type {account_type.value!r}"
        )
    return AccountSeed(
        account_number=str(data["number"]),
        name=data["name"],
        account_type=account_type,
        statement_section=section,
        statement_order=int(data.get("order", 0)),
        category=data.get("category"),
        normal_balance=(
            NormalBalance(data["normal_balance"]) if data.get("normal_balance") else None
        ),
        net_asset_class=(
            NetAssetClass(data["net_asset_class"]) if data.get("net_asset_class") else None
        ),
    )


def parse_chart(data: dict[str, Any]) -> ChartSeed:
    """Parse a chart document into a checksummed ChartSeed."""
    accounts = tuple(parse_account_seed(item) for item in data.get("accounts", []))
    numbers = [a.account_number for a in accounts]
    duplicates = sorted({n for n in numbers if numbers.count(n) > 1})
    if duplicates:
        raise ValueError(f"Duplicate account numbers in chart: {duplicates}")
    return ChartSeed(
        chart_id=data["chart_id"],
        version=int(data["version"]),
        description=data.get("description", ""),
        accounts=accounts,
        checksum=compute_checksum(data),
    )


def load_chart(path: Path) -> ChartSeed:
    return parse_chart(load_yaml_file(path))


def parse_settings(data: dict[str, Any], environ: dict[str, str] | None = None) -> LedgerSettings:
    """
    Build LedgerSettings from a parsed document.

    ``FUND_LEDGER_DATABASE_URL`` in ``environ`` (default ``os.environ``)
    overrides ``database.url``.
    """
    env = os.environ if environ is None else environ
    database = data.get("database", {})
    logging_section = data.get("logging", {})
    database_url = env.get(DATABASE_URL_ENV) or database.get("url", "sqlite://")
    return LedgerSettings(
        database_url=database_url,
        log_level=str(logging_section.get("level", "INFO")).upper(),
        echo_sql=bool(database.get("echo", False)),
        donation_posting=MappingProxyType(dict(data.get("donation_posting", {}))),
        reporting=MappingProxyType(dict(data.get("reporting", {}))),
    )


def load_settings_file(path: Path, environ: dict[str, str] | None = None) -> LedgerSettings:
    return parse_settings(load_yaml_file(path), environ)
