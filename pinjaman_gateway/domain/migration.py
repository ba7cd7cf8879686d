"""Snapshot migration - upgrades persisted blobs to the current shape

Runs on the raw dict before parsing. The pass is idempotent: feeding its own
output back in returns an equal dict.
"""

import copy
from typing import Any, Dict, List, Mapping

from pinjaman_gateway.domain.exceptions import InvalidSnapshotError
from pinjaman_gateway.domain.models import SCHEMA_VERSION, AppConfig, AppState, LoanCategory
from pinjaman_gateway.domain.snapshot import config_to_dict, state_from_dict, state_to_dict
from pinjaman_gateway.utils.date_utils import sort_month_labels

# Remon rate assumed when a v1 snapshot only carried a single interest rate
LEGACY_REMON_RATE = 10


def _split_legacy_config(config: Dict[str, Any]) -> None:
    """v1 snapshots had one activeMonth/interestRate shared by both categories"""
    legacy_month = config.pop("activeMonth", None)
    if not config.get("activeMonthGaji") and legacy_month:
        config["activeMonthGaji"] = legacy_month
        config["activeMonthRemon"] = legacy_month

    legacy_rate = config.pop("interestRate", None)
    if not config.get("interestRateGaji") and legacy_rate:
        config["interestRateGaji"] = legacy_rate
        config["interestRateRemon"] = LEGACY_REMON_RATE


def _fill_config_defaults(config: Dict[str, Any]) -> None:
    # availableMonths is rebuilt from the data, not taken from defaults
    defaults = config_to_dict(AppConfig())
    defaults.pop("availableMonths")
    for key, value in defaults.items():
        if config.get(key) is None:
            config[key] = value
    config["version"] = SCHEMA_VERSION


def _active_month(config: Dict[str, Any], category: str) -> str:
    if category == LoanCategory.GAJI.value:
        return config["activeMonthGaji"]
    return config["activeMonthRemon"]


def _collect_months(config: Dict[str, Any], transactions: List[Dict[str, Any]]) -> List[str]:
    """Known months + both active months + every transaction's dueMonth, chronological"""
    labels = list(config.get("availableMonths") or [])
    labels.extend(m for m in (config.get("activeMonthGaji"), config.get("activeMonthRemon")) if m)
    labels.extend(t["dueMonth"] for t in transactions if t.get("dueMonth"))
    return sort_month_labels(labels)


def migrate_snapshot(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Upgrade a persisted blob to the current schema.

    Steps:
    1. Split legacy single-value config fields per category
    2. Fill remaining config defaults, stamp the schema version
    3. Backfill each transaction's dueMonth from the category's active month
    4. Rebuild availableMonths and sort it chronologically

    Raises:
        InvalidSnapshotError: raw is not a mapping
    """
    if not isinstance(raw, Mapping):
        raise InvalidSnapshotError(f"Snapshot must be an object, got {type(raw).__name__}")

    snapshot = copy.deepcopy(dict(raw))
    snapshot["borrowers"] = snapshot.get("borrowers") or []
    transactions = snapshot.get("transactions") or []
    config = dict(snapshot.get("config") or {})

    _split_legacy_config(config)
    _fill_config_defaults(config)

    for txn in transactions:
        if not txn.get("dueMonth"):
            txn["dueMonth"] = _active_month(config, txn.get("category"))

    config["availableMonths"] = _collect_months(config, transactions)

    snapshot["transactions"] = transactions
    snapshot["config"] = config
    return snapshot


def load_snapshot(raw: Mapping[str, Any]) -> AppState:
    """Migrate then parse a persisted blob"""
    return state_from_dict(migrate_snapshot(raw))


def migrate_state(state: AppState) -> AppState:
    """Normalize an in-memory state (e.g. a restored backup) through the same pass"""
    return load_snapshot(state_to_dict(state))
