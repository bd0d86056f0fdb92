"""Card provider client (Zoop), used by establishment types 1 and 2.

Endpoints:
    GET /v1/marketplaces/{marketplace}/sellers/{seller}/transactions
    GET /v1/marketplaces/{marketplace}/sellers/{seller}/balances
    GET /v1/card-present/terminals/{terminal_id}
    GET /v1/card-present/terminals/search?serial_number=...

Authentication is ``Authorization: Basic <establishment key>``; the key is
stored already encoded.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from finance_core.exceptions import ExternalFetchError
from finance_core.http import basic_auth_header, request_json
from finance_core.providers.base import PaymentClient, fetch_all_pages, parse_total_pages
from finance_core.utils import local_day_window, round_money, to_decimal

if TYPE_CHECKING:
    from finance_core.store import Establishment

logger = logging.getLogger(__name__)

TRANSACTION_STATUSES = "succeeded,canceled"


class ZoopClient(PaymentClient):
    """Client for the card provider's marketplace API."""

    def _seller_url(self, establishment: Establishment) -> str:
        return (
            f"{self.settings.zoop_base}/v1/marketplaces/{establishment.account_id}"
            f"/sellers/{establishment.seller_id}"
        )

    def date_window(self, start: date, end: date) -> tuple[str, str]:
        """Whole provider-local days as UTC instants (see ``local_day_window``)."""
        return local_day_window(start, end, self.settings.utc_offset_hours)

    def fetch_transactions(self, establishment: Establishment, start: str, end: str) -> list[dict[str, Any]]:
        url = f"{self._seller_url(establishment)}/transactions"
        headers = basic_auth_header(establishment.credential)
        label = f"Transaction search for establishment {establishment.id}"

        def fetch_page(page: int) -> tuple[list[dict[str, Any]] | None, int]:
            params = {
                "limit": self.settings.page_size,
                "page": page,
                "offset": 0,
                "date_range[gte]": start,
                "date_range[lte]": end,
                "status": TRANSACTION_STATUSES,
            }
            body = request_json(self.session, "GET", url, label, params=params, headers=headers)
            if not isinstance(body, dict) or body.get("items") is None:
                return None, 0
            items = body["items"]
            if not isinstance(items, list):
                raise ExternalFetchError(f"{label}: 'items' is not a list")
            return items, parse_total_pages(body.get("total_pages"), label)

        transactions = fetch_all_pages(fetch_page, self.settings.max_attempts, label)
        logger.info("Fetched %d card transactions for establishment %s", len(transactions), establishment.id)
        return transactions

    def fetch_balance(self, establishment: Establishment) -> Decimal:
        """Current balance in currency units.

        The provider reports minor units (cents); the value is divided by 100
        and rounded to 2 places. A missing balance reads as 0.00.
        """
        url = f"{self._seller_url(establishment)}/balances"
        body = request_json(
            self.session,
            "GET",
            url,
            f"Balance for establishment {establishment.id}",
            headers=basic_auth_header(establishment.credential),
        )
        items = body.get("items") if isinstance(body, dict) else None
        cents = items.get("current_balance") if isinstance(items, dict) else None
        if not cents:
            return Decimal("0.00")
        try:
            return round_money(to_decimal(cents) / 100)
        except ValueError as e:
            raise ExternalFetchError(f"Balance for establishment {establishment.id}: {e}") from e

    def get_terminal(self, terminal_id: str, credential: str) -> dict[str, Any]:
        """Fetch one terminal by its provider identifier.

        Raises:
            ExternalFetchError: If the lookup fails or the body is not an object.
        """
        url = f"{self.settings.zoop_base}/v1/card-present/terminals/{terminal_id}"
        body = request_json(
            self.session, "GET", url, f"Terminal lookup {terminal_id}", headers=basic_auth_header(credential)
        )
        if not isinstance(body, dict):
            raise ExternalFetchError(f"Terminal lookup {terminal_id}: unexpected response")
        return body

    def search_terminal(self, serial: str, credential: str) -> dict[str, Any] | None:
        """Find a terminal by serial number; None when the provider has no match."""
        url = f"{self.settings.zoop_base}/v1/card-present/terminals/search"
        body = request_json(
            self.session,
            "GET",
            url,
            f"Terminal search {serial}",
            params={"serial_number": serial},
            headers=basic_auth_header(credential),
        )
        if isinstance(body, list):
            return body[0] if body else None
        if isinstance(body, dict):
            items = body.get("items")
            if isinstance(items, list):
                return items[0] if items else None
            return body if body.get("id") else None
        return None
