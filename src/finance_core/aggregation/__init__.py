"""Aggregation pipeline.

- ``eligibility``: which establishments a request may aggregate
- ``classify``: provider codes to display categories
- ``terminals``: point-of-sale identifiers to terminal labels
- ``normalize``: raw provider records to NormalizedTransaction
- ``orchestrator``: per-establishment fetch, summary, pagination

Example:
    >>> from finance_core.aggregation import aggregate, boleto_normalizer
    >>> from finance_core.providers import UseClient
    >>> result = aggregate(establishments, "2024-05-01", "2024-05-31",
    ...                    client=UseClient(), normalize=boleto_normalizer())
"""

from finance_core.aggregation.eligibility import resolve_eligible
from finance_core.aggregation.normalize import boleto_normalizer, card_normalizer
from finance_core.aggregation.orchestrator import aggregate, validate_date_range
from finance_core.aggregation.terminals import (
    TERMINAL_NOT_FOUND,
    TerminalResolver,
    register_terminal,
    resolve_terminal_label,
)
from finance_core.aggregation.types import (
    AggregationError,
    AggregationResult,
    EstablishmentSummary,
    NormalizedTransaction,
    PageMeta,
)

__all__ = [
    "TERMINAL_NOT_FOUND",
    "AggregationError",
    "AggregationResult",
    "EstablishmentSummary",
    "NormalizedTransaction",
    "PageMeta",
    "TerminalResolver",
    "aggregate",
    "boleto_normalizer",
    "card_normalizer",
    "register_terminal",
    "resolve_eligible",
    "resolve_terminal_label",
    "validate_date_range",
]
