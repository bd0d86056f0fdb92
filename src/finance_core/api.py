"""Public request-level API.

This module provides the entry points the HTTP layer calls. Each one
validates its input before any external call, runs the pipeline and returns
an ApiResponse whose body is the JSON document sent to the client:

    {"status": true, "message": "...", "data": [...],
     "meta": {"currentPage": 1, "totalPages": 1, "totalItems": 2},
     "errors": [{"establishment_id": 7, "message": "..."}]}   # only when any failed

Request errors (validation, authorization, not found) produce
``status: false`` with no data. Anything unexpected outside the
per-establishment boundary is raised as FatalError.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from finance_core.aggregation.eligibility import resolve_eligible
from finance_core.aggregation.normalize import boleto_normalizer, card_normalizer
from finance_core.aggregation.orchestrator import aggregate, validate_date_range, validate_pagination
from finance_core.aggregation.terminals import TerminalResolver, register_terminal
from finance_core.exceptions import FatalError, NotFoundError, RequestError, ValidationError
from finance_core.providers.use import UseClient
from finance_core.providers.zoop import ZoopClient
from finance_core.store import ProviderFamily, ProviderType

if TYPE_CHECKING:
    from finance_core.aggregation.types import AggregationResult
    from finance_core.store import JsonStore, User

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Transactions returned successfully"


@dataclass
class ApiResponse:
    """HTTP status plus JSON body (and the typed result for aggregations)."""

    status_code: int
    body: dict[str, Any]
    result: AggregationResult | None = None

    @property
    def ok(self) -> bool:
        return bool(self.body.get("status"))


def error_response(error: RequestError) -> ApiResponse:
    return ApiResponse(
        status_code=error.http_status,
        body={"status": False, "message": error.message, "code": error.code},
    )


def result_response(result: AggregationResult) -> ApiResponse:
    body: dict[str, Any] = {
        "status": True,
        "message": SUCCESS_MESSAGE,
        "data": [s.to_dict() for s in result.summaries],
        "meta": result.meta.to_dict(),
    }
    if result.errors:
        body["errors"] = [e.to_dict() for e in result.errors]
    return ApiResponse(status_code=200, body=body, result=result)


def _aggregate_family(
    family: ProviderFamily,
    store: JsonStore,
    start_date: str | None,
    end_date: str | None,
    establishment_ids: Iterable[int] | None,
    principal: User | None,
    page: int,
    per_page: int,
    client: ZoopClient | UseClient | None,
    trusted: bool,
) -> ApiResponse:
    try:
        validate_date_range(start_date, end_date)
        validate_pagination(page, per_page)
        entitled = principal.entitled_establishment_ids if principal is not None else None
        establishments = resolve_eligible(store, establishment_ids, entitled, family, trusted=trusted)

        if family is ProviderFamily.CARD:
            card_client = client if isinstance(client, ZoopClient) else ZoopClient()
            resolver = TerminalResolver(store.list_terminals(), card_client)
            normalize = card_normalizer(resolver, card_client.settings.utc_offset_hours)
            provider = card_client
        else:
            provider = client if isinstance(client, UseClient) else UseClient()
            normalize = boleto_normalizer(provider.settings.utc_offset_hours)

        result = aggregate(
            establishments,
            start_date,  # type: ignore[arg-type]
            end_date,  # type: ignore[arg-type]
            page,
            per_page,
            client=provider,
            normalize=normalize,
        )
    except RequestError as e:
        logger.info("Rejected %s aggregation: %s", family.value, e.message)
        return error_response(e)
    except Exception as e:
        logger.error("Aggregation aborted: %s", e)
        raise FatalError(f"Internal failure while aggregating {family.value} transactions") from e
    return result_response(result)


def fetch_card_transactions(
    store: JsonStore,
    start_date: str | None,
    end_date: str | None,
    establishment_ids: Iterable[int] | None = None,
    principal: User | None = None,
    page: int = 1,
    per_page: int = 20,
    client: ZoopClient | None = None,
    trusted: bool = False,
) -> ApiResponse:
    """Aggregate card transactions for establishments of types 1 and 2.

    Explicit ids are always intersected with the principal's entitlements
    unless ``trusted`` is set; a missing principal has no entitlements.

    Args:
        store: Establishment and terminal store.
        start_date: First day, YYYY-MM-DD.
        end_date: Last day, YYYY-MM-DD.
        establishment_ids: Explicit establishment ids, or None to use the
            principal's entitlements.
        principal: Authenticated user.
        page: 1-indexed page over establishment summaries (default 1).
        per_page: Summaries per page (default 20).
        client: Card provider client; a default one is built when None.
        trusted: Skip the entitlement check (operator tooling only).

    Returns:
        ApiResponse (200 with data, or a 4xx ``status: false`` body).

    Raises:
        FatalError: On unexpected failures outside the per-establishment loop.

    """
    return _aggregate_family(
        ProviderFamily.CARD, store, start_date, end_date, establishment_ids, principal, page, per_page, client, trusted
    )


def fetch_boleto_receipts(
    store: JsonStore,
    start_date: str | None,
    end_date: str | None,
    establishment_ids: Iterable[int] | None = None,
    principal: User | None = None,
    page: int = 1,
    per_page: int = 20,
    client: UseClient | None = None,
    trusted: bool = False,
) -> ApiResponse:
    """Aggregate boleto/PIX receipts for establishments of type 3.

    Same contract as ``fetch_card_transactions``.
    """
    return _aggregate_family(
        ProviderFamily.BOLETO, store, start_date, end_date, establishment_ids, principal, page, per_page, client, trusted
    )


def request_payout(store: JsonStore, establishment_id: int, client: UseClient | None = None) -> ApiResponse:
    """Ask the boleto provider to pay out an establishment's balance.

    Raises:
        ExternalFetchError: If the provider rejects or cannot be reached.
    """
    try:
        establishment = store.get_establishment(establishment_id)
        if establishment is None:
            raise NotFoundError("Establishment not found")
        if establishment.provider_type != ProviderType.USE:
            raise ValidationError(f"Establishment {establishment_id} is not of type 3")
    except RequestError as e:
        return error_response(e)

    (client or UseClient()).request_payout(establishment)
    return ApiResponse(status_code=200, body={"status": True, "message": "Payout requested successfully"})


def create_terminal(
    store: JsonStore,
    serial: str,
    description: str | None,
    terminal_type: int,
    establishment_id: int,
    client: ZoopClient | None = None,
) -> ApiResponse:
    """Register a terminal after confirming its serial with the card provider."""
    try:
        if terminal_type not in (ProviderType.ZOOP, ProviderType.SUMCRED):
            raise ValidationError(f"Terminal type must be 1 or 2, got {terminal_type!r}")
        terminal = register_terminal(
            store, client or ZoopClient(), serial, description, terminal_type, establishment_id
        )
    except RequestError as e:
        return error_response(e)
    return ApiResponse(
        status_code=201,
        body={"status": True, "message": "Terminal registered successfully", "data": terminal.to_record()},
    )
