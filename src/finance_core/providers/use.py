"""Boleto/PIX provider client (USE), used by establishment type 3.

Endpoints (all under ``/credenciados/v1/{identificador}``):
    POST /cobrancas-pagas?data_inicio=...&data_fim=...   paid charges
    GET  /saldo                                          current balance
    POST /repasse                                        payout request

Authentication is the ``X-Credenciado-Chave`` header.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from finance_core.exceptions import ExternalFetchError
from finance_core.http import request_json
from finance_core.providers.base import PaymentClient, fetch_all_pages, parse_total_pages
from finance_core.utils import to_decimal

if TYPE_CHECKING:
    from finance_core.store import Establishment

logger = logging.getLogger(__name__)


class UseClient(PaymentClient):
    """Client for the boleto provider's credenciado API."""

    def _account_url(self, establishment: Establishment) -> str:
        return f"{self.settings.use_base}/credenciados/v1/{establishment.account_id}"

    @staticmethod
    def _headers(establishment: Establishment) -> dict[str, str]:
        return {"Content-Type": "application/json", "X-Credenciado-Chave": establishment.credential}

    def date_window(self, start: date, end: date) -> tuple[str, str]:
        """The provider filters on calendar dates, passed through as YYYY-MM-DD."""
        return start.isoformat(), end.isoformat()

    def fetch_transactions(self, establishment: Establishment, start: str, end: str) -> list[dict[str, Any]]:
        """Fetch paid charges (receipts), each carrying its list of payments.

        The endpoint usually answers with a bare list; a paged object
        (``items`` and ``total_pages``) is followed page by page.
        """
        url = f"{self._account_url(establishment)}/cobrancas-pagas"
        label = f"Paid charges for establishment {establishment.id}"

        def fetch_page(page: int) -> tuple[list[dict[str, Any]] | None, int]:
            params: dict[str, Any] = {"data_inicio": start, "data_fim": end}
            if page > 1:
                params["page"] = page
            body = request_json(
                self.session, "POST", url, label, params=params, headers=self._headers(establishment)
            )
            if body is None:
                return None, 0
            if isinstance(body, list):
                return body, 1
            if isinstance(body, dict) and isinstance(body.get("items"), list):
                return body["items"], parse_total_pages(body.get("total_pages"), label)
            raise ExternalFetchError(f"{label}: unexpected response shape")

        receipts = fetch_all_pages(fetch_page, self.settings.max_attempts, label)
        logger.info("Fetched %d paid charges for establishment %s", len(receipts), establishment.id)
        return receipts

    def fetch_balance(self, establishment: Establishment) -> Decimal:
        """Current balance exactly as the provider reports it (``saldo_atual``)."""
        body = request_json(
            self.session,
            "GET",
            f"{self._account_url(establishment)}/saldo",
            f"Balance for establishment {establishment.id}",
            headers=self._headers(establishment),
        )
        raw = body.get("saldo_atual") if isinstance(body, dict) else None
        try:
            return to_decimal(raw)
        except ValueError as e:
            raise ExternalFetchError(f"Balance for establishment {establishment.id}: {e}") from e

    def request_payout(self, establishment: Establishment) -> Any:
        """Ask the provider to pay out the establishment's available balance."""
        logger.info("Requesting payout for establishment %s", establishment.id)
        return request_json(
            self.session,
            "POST",
            f"{self._account_url(establishment)}/repasse",
            f"Payout for establishment {establishment.id}",
            headers=self._headers(establishment),
        )
