"""Base interface for payment provider clients.

This module defines the abstract base class every provider client
implements, so the orchestrator can aggregate card and boleto providers
through one interface, plus the bounded-attempt pagination loop they share.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import requests

from finance_core.config import ProviderSettings
from finance_core.exceptions import ExternalFetchError
from finance_core.http import make_session

if TYPE_CHECKING:
    from finance_core.store import Establishment

logger = logging.getLogger(__name__)

# fetch_page(page) -> (items or None when the page carries no item list, total_pages)
PageFetcher = Callable[[int], "tuple[list[dict[str, Any]] | None, int]"]


def fetch_all_pages(fetch_page: PageFetcher, max_attempts: int, label: str) -> list[dict[str, Any]]:
    """Fetch every page, restarting from page 1 when any request fails.

    Pages are requested in order until the reported total-page count is
    reached, and items are concatenated in server order. A page without an
    item list ends the fetch with what was collected so far (an empty result
    is not an error).

    Args:
        fetch_page: Callable returning ``(items, total_pages)`` for a page.
        max_attempts: Whole-fetch attempts before giving up.
        label: Context for log and error messages.

    Returns:
        All items across pages.

    Raises:
        ExternalFetchError: If the last attempt fails.

    """
    last_error: ExternalFetchError | None = None
    for attempt in range(1, max_attempts + 1):
        items: list[dict[str, Any]] = []
        page = 1
        try:
            while True:
                page_items, total_pages = fetch_page(page)
                if page_items is None:
                    break
                items.extend(page_items)
                logger.debug("%s: page %d of %d (%d items)", label, page, total_pages, len(page_items))
                if page >= total_pages:
                    break
                page += 1
            return items
        except ExternalFetchError as e:
            last_error = e
            logger.warning("%s failed (attempt %d of %d): %s", label, attempt, max_attempts, e)

    raise ExternalFetchError(f"{label} failed after {max_attempts} attempts: {last_error}") from last_error


def parse_total_pages(value: Any, label: str) -> int:
    """Read a page count from a provider body; missing or zero means one page.

    Raises:
        ExternalFetchError: If the count is not an integer.
    """
    if value is None or value == "" or value == 0:
        return 1
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ExternalFetchError(f"{label}: invalid total_pages {value!r}") from e


class PaymentClient(ABC):
    """Abstract base class for payment provider clients.

    All clients authenticate each call with the establishment's own
    credential and convert every transport or protocol failure into
    ExternalFetchError.
    """

    def __init__(
        self,
        settings: ProviderSettings | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.settings = settings or ProviderSettings.from_env()
        self.session = session or make_session(self.settings)

    @abstractmethod
    def date_window(self, start: date, end: date) -> tuple[str, str]:
        """Translate requested calendar days into the provider's range parameters."""
        pass

    @abstractmethod
    def fetch_transactions(self, establishment: Establishment, start: str, end: str) -> list[dict[str, Any]]:
        """Fetch every raw transaction for the establishment in the range.

        Args:
            establishment: Establishment whose credential is used.
            start: Range start as returned by ``date_window``.
            end: Range end as returned by ``date_window``.

        Returns:
            Raw provider records in server order.

        Raises:
            ExternalFetchError: After the configured attempts are exhausted.
        """
        pass

    @abstractmethod
    def fetch_balance(self, establishment: Establishment) -> Decimal:
        """Fetch the establishment's current balance in the provider's convention."""
        pass
