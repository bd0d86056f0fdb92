"""Aggregation orchestrator.

For each eligible establishment, one at a time, the transactions and the
balance are fetched concurrently and joined; the raw records are then
normalized, sorted and summed into an EstablishmentSummary. A failure in
any of those steps is recorded as an AggregationError for that
establishment and processing moves on, so a request always returns the
summaries that succeeded alongside the failures.

Establishments are deliberately processed sequentially: at most two
provider calls are outstanding per request.
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor, wait
from decimal import Decimal
from typing import TYPE_CHECKING

from finance_core.aggregation.types import (
    AggregationError,
    AggregationResult,
    EstablishmentSummary,
    PageMeta,
)
from finance_core.exceptions import ExternalFetchError, ValidationError
from finance_core.utils import parse_date, round_money

if TYPE_CHECKING:
    from datetime import date

    from finance_core.aggregation.normalize import Normalizer
    from finance_core.providers.base import PaymentClient
    from finance_core.store import Establishment

logger = logging.getLogger(__name__)

DATE_RANGE_MESSAGE = "Parameters startDate and endDate are required and must be in YYYY-MM-DD format"


def validate_date_range(start_date: str | None, end_date: str | None) -> tuple[date, date]:
    """Parse and check the requested range.

    Raises:
        ValidationError: If a bound is missing, not YYYY-MM-DD, not a real
            date, or the range is reversed.
    """
    try:
        start = parse_date(start_date)  # type: ignore[arg-type]
        end = parse_date(end_date)  # type: ignore[arg-type]
    except ValueError as e:
        raise ValidationError(DATE_RANGE_MESSAGE) from e
    if start > end:
        raise ValidationError(f"startDate {start_date} is after endDate {end_date}")
    return start, end


def validate_pagination(page: int, page_size: int) -> None:
    if not isinstance(page, int) or isinstance(page, bool) or page < 1:
        raise ValidationError(f"page must be a positive integer, got {page!r}")
    if not isinstance(page_size, int) or isinstance(page_size, bool) or page_size < 1:
        raise ValidationError(f"perPage must be a positive integer, got {page_size!r}")


def summarize(
    establishment: Establishment,
    transactions: list,
    balance: Decimal,
) -> EstablishmentSummary:
    """Sort transactions and compute the establishment totals.

    Transactions are ordered by payment date ascending, then customer name.
    Totals are summed exactly and rounded to 2 places once.
    """
    ordered = tuple(sorted(transactions, key=lambda t: t.sort_key()))
    return EstablishmentSummary(
        establishment_id=establishment.id,
        name=establishment.name,
        region=establishment.region,
        tax_id=establishment.tax_id,
        uses_payout=establishment.uses_payout,
        count=len(ordered),
        total=round_money(sum((t.amount for t in ordered), Decimal("0"))),
        fee_total=round_money(sum((t.fee for t in ordered), Decimal("0"))),
        balance=balance,
        transactions=ordered,
    )


def process_establishment(
    establishment: Establishment,
    start: str,
    end: str,
    client: PaymentClient,
    normalize: Normalizer,
    pool: ThreadPoolExecutor,
) -> EstablishmentSummary | AggregationError:
    """Aggregate one establishment, converting any failure into an AggregationError."""
    try:
        tx_future = pool.submit(client.fetch_transactions, establishment, start, end)
        balance_future = pool.submit(client.fetch_balance, establishment)
        wait([tx_future, balance_future])
        raw = tx_future.result()
        balance = balance_future.result()
        return summarize(establishment, normalize(raw, establishment), balance)
    except ExternalFetchError as e:
        logger.warning("Fetch failed for establishment %s: %s", establishment.id, e)
        return AggregationError(
            establishment.id,
            f"Error fetching data for establishment {establishment.name}: {e}",
        )
    except Exception as e:
        logger.warning("Processing failed for establishment %s: %s", establishment.id, e, exc_info=True)
        return AggregationError(
            establishment.id,
            f"Error processing establishment {establishment.name}: {e}",
        )


def paginate(
    summaries: list[EstablishmentSummary], page: int, page_size: int
) -> tuple[list[EstablishmentSummary], PageMeta]:
    """Slice summaries for a 1-indexed page."""
    total_items = len(summaries)
    offset = (page - 1) * page_size
    meta = PageMeta(
        current_page=page,
        total_pages=math.ceil(total_items / page_size),
        total_items=total_items,
    )
    return summaries[offset : offset + page_size], meta


def aggregate(
    establishments: list[Establishment],
    start_date: str,
    end_date: str,
    page: int = 1,
    page_size: int = 20,
    *,
    client: PaymentClient,
    normalize: Normalizer,
) -> AggregationResult:
    """Aggregate transactions and balances for a set of establishments.

    Args:
        establishments: Eligible establishments, already ordered by name.
        start_date: First day, YYYY-MM-DD (inclusive).
        end_date: Last day, YYYY-MM-DD (inclusive).
        page: 1-indexed page over establishment summaries.
        page_size: Summaries per page.
        client: Provider client for the establishments' family.
        normalize: Converts raw provider records into NormalizedTransaction.

    Returns:
        AggregationResult with the requested page of summaries, page
        metadata, and one AggregationError per failed establishment.

    Raises:
        ValidationError: On a malformed date range or page parameters,
            before any provider call.

    Examples:
        >>> result = aggregate(establishments, "2024-05-01", "2024-05-31",
        ...                    client=UseClient(), normalize=boleto_normalizer())
        >>> result.meta.total_items
        3

    """
    start, end = validate_date_range(start_date, end_date)
    validate_pagination(page, page_size)
    window_start, window_end = client.date_window(start, end)

    logger.info(
        "Aggregating %d establishment(s) from %s to %s", len(establishments), start_date, end_date
    )

    summaries: list[EstablishmentSummary] = []
    errors: list[AggregationError] = []
    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="provider-fetch") as pool:
        for establishment in establishments:
            outcome = process_establishment(
                establishment, window_start, window_end, client, normalize, pool
            )
            if isinstance(outcome, AggregationError):
                errors.append(outcome)
            else:
                summaries.append(outcome)

    page_items, meta = paginate(summaries, page, page_size)
    logger.info("Aggregated %d establishment(s), %d failed", len(summaries), len(errors))
    return AggregationResult(summaries=page_items, meta=meta, errors=errors)
