"""Command-line client - applies action files to the shared loan book

Runs the same dispatch loop as the browser app: the book starts from the
local cache, is replaced by the remote copy once it arrives, and every
change goes through the PersistenceAdapter (cache write, debounced remote
save, optional Sheets backup).

Usage:
    pinjaman-client actions.json --state-api http://localhost:5000
"""

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Iterable, List, Optional

from pydantic import ValidationError

from pinjaman_gateway.api.v1.schemas import ActionEnvelope
from pinjaman_gateway.config import settings
from pinjaman_gateway.domain.calculator import format_currency, summarize
from pinjaman_gateway.domain.exceptions import InvalidSnapshotError
from pinjaman_gateway.domain.store import LoanBook
from pinjaman_gateway.infrastructure.cache import LocalStateCache
from pinjaman_gateway.infrastructure.clients.state_store import StateStoreClient
from pinjaman_gateway.infrastructure.observability.logging import log_action, setup_logging
from pinjaman_gateway.infrastructure.observability.metrics import record_action
from pinjaman_gateway.infrastructure.persistence import PersistenceAdapter

logger = logging.getLogger(__name__)


def read_actions(path: Path) -> List[ActionEnvelope]:
    """
    Parse an action file.

    The file holds one action object or a list of them, each in the
    POST /v1/actions shape ({"type": "ADD_LOAN", ...}).

    Raises:
        ValidationError: an action does not match any known type
    """
    with path.open(encoding="utf-8") as f:
        raw = json.load(f)
    if isinstance(raw, dict):
        raw = [raw]
    return [ActionEnvelope.model_validate({"action": item}) for item in raw]


async def run(envelopes: Iterable[ActionEnvelope], adapter: PersistenceAdapter) -> LoanBook:
    """
    Hydrate a LoanBook and dispatch the actions through it.

    Steps:
    1. Start from the local cache and subscribe the adapter
    2. Replace the state with the remote copy (enables remote saves)
    3. Dispatch each action in order; unknown references are logged and skipped
    4. Wait for the pending remote save and any sync in flight
    """
    book = LoanBook(adapter.load_cached())
    unsubscribe = adapter.connect(book)
    try:
        await adapter.hydrate(book)
        for envelope in envelopes:
            try:
                action = envelope.action.to_action(book.state)
            except InvalidSnapshotError as e:
                logger.error("Action rejected", extra={"action_type": envelope.action.type, "error": str(e)})
                continue
            result = book.dispatch(action)
            record_action(action.action_type, result.applied)
            log_action(action.action_type, result.applied, result.error)
        await adapter.flush()
    finally:
        unsubscribe()
    return book


def log_summary(book: LoanBook) -> None:
    summary = summarize(book.state.transactions)
    logger.info("=" * 60)
    logger.info("Borrowers: %d", len(book.state.borrowers))
    logger.info("Transactions: %d", len(book.state.transactions))
    logger.info("Principal: %s", format_currency(summary.total_principal))
    logger.info("Receivable: %s", format_currency(summary.total_receivable))
    logger.info("Paid: %s", format_currency(summary.total_paid))
    logger.info("Outstanding: %s", format_currency(summary.outstanding))
    logger.info("=" * 60)


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Apply loan book actions and persist the result to the cache and remote store",
    )
    parser.add_argument(
        "actions",
        type=Path,
        help="JSON file with one action or a list of actions",
    )
    parser.add_argument(
        "--state-api",
        type=str,
        default=settings.state_api_base,
        help=f"Remote state store base URL (default: {settings.state_api_base})",
    )
    parser.add_argument(
        "--cache",
        type=Path,
        default=Path(settings.local_cache_path),
        help=f"Local cache file (default: {settings.local_cache_path})",
    )
    parser.add_argument(
        "--debounce",
        type=float,
        default=settings.save_debounce_seconds,
        help="Seconds to wait before the remote save",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=settings.log_level,
        help="Log level (default: %(default)s)",
    )
    args = parser.parse_args(argv)

    setup_logging(args.log_level)

    if not args.actions.is_file():
        parser.error(f"action file not found: {args.actions}")
    try:
        envelopes = read_actions(args.actions)
    except (ValueError, ValidationError) as e:
        parser.error(f"invalid action file: {e}")

    adapter = PersistenceAdapter(
        cache=LocalStateCache(args.cache),
        store_client=StateStoreClient(base_url=args.state_api),
        debounce_seconds=args.debounce,
    )
    book = asyncio.run(run(envelopes, adapter))
    log_summary(book)


if __name__ == "__main__":
    main()
