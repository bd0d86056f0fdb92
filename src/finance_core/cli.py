"""Command line for Finance Core.

Runs an aggregation or a payout request against a JSON store and prints the
response body as JSON.

Examples:
    $ finance-core --store store.json cards 2024-05-01 2024-05-31 --token t0k3n
    $ finance-core receipts 2024-05-01 2024-05-31 --user-id 1 --ids 3 4 --csv out/receipts.csv
    $ finance-core receipts 2024-05-01 2024-05-31 --trusted --ids 3
    $ finance-core payout 3
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from finance_core.api import ApiResponse, fetch_boleto_receipts, fetch_card_transactions, request_payout
from finance_core.exceptions import AuthorizationError, FinanceCoreError
from finance_core.report import export_csv, transactions_frame
from finance_core.store import JsonStore, User

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="finance-core",
        description="Aggregate payment provider transactions per establishment.",
    )
    parser.add_argument(
        "--store",
        default=os.environ.get("FIN_STORE"),
        help="Path to the JSON store (default: $FIN_STORE)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("cards", "Card transactions (establishment types 1 and 2)"),
        ("receipts", "Boleto/PIX receipts (establishment type 3)"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("start_date", help="First day, YYYY-MM-DD")
        p.add_argument("end_date", help="Last day, YYYY-MM-DD")
        p.add_argument("--ids", type=int, nargs="+", default=None, help="Establishment ids")
        who = p.add_mutually_exclusive_group()
        who.add_argument("--token", help="Access token of the requesting user")
        who.add_argument("--user-id", type=int, help="Act as this user id")
        who.add_argument(
            "--trusted",
            action="store_true",
            help="Operator mode: skip entitlement checks for --ids (all establishments when omitted)",
        )
        p.add_argument("--page", type=int, default=1, help="Page number (default: 1)")
        p.add_argument("--per-page", type=int, default=20, help="Establishments per page (default: 20)")
        p.add_argument("--csv", type=Path, default=None, help="Also write one row per transaction here")

    p = sub.add_parser("payout", help="Request a payout for a type 3 establishment")
    p.add_argument("establishment_id", type=int)
    return parser


def _principal(store: JsonStore, args: argparse.Namespace) -> User | None:
    if args.token:
        return store.principal_for_token(args.token)
    if args.user_id is not None:
        user = store.get_user(args.user_id)
        if user is None or not user.active:
            raise AuthorizationError(f"User {args.user_id} not found or not active.")
        return user
    return None


def run(args: argparse.Namespace) -> ApiResponse:
    """Execute one parsed command and return its response."""
    if not args.store:
        raise SystemExit("No store given: pass --store or set FIN_STORE")
    store = JsonStore.from_path(args.store)

    if args.command == "payout":
        return request_payout(store, args.establishment_id)

    fetch = fetch_card_transactions if args.command == "cards" else fetch_boleto_receipts
    response = fetch(
        store,
        args.start_date,
        args.end_date,
        establishment_ids=args.ids,
        principal=_principal(store, args),
        page=args.page,
        per_page=args.per_page,
        trusted=args.trusted,
    )
    if args.csv and response.result is not None:
        export_csv(transactions_frame(response.result), args.csv)
    return response


def main(argv: list[str] | None = None) -> None:
    """Entry point for ``finance-core``.

    Exits with code 0 when the response status is true, 1 otherwise.
    """
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        response = run(args)
    except AuthorizationError as e:
        print(json.dumps({"status": False, "message": e.message, "code": e.code}, ensure_ascii=False))
        raise SystemExit(1) from e
    except FinanceCoreError as e:
        print(f"FATAL: {type(e).__name__}: {e}", file=sys.stderr)
        raise SystemExit(1) from e

    print(json.dumps(response.body, indent=2, ensure_ascii=False))
    raise SystemExit(0 if response.ok else 1)


if __name__ == "__main__":
    main()
