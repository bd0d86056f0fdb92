"""Finance Core - transaction aggregation across payment providers.

This package aggregates transactions and balances from two external payment
providers for a set of establishments, normalizes them into one shape and
returns paginated per-establishment summaries, tolerating failures of
individual establishments.

Module Structure:
    finance_core.store: Establishments, terminals, users and access tokens
    finance_core.providers: Zoop (card) and USE (boleto/PIX) clients
    finance_core.aggregation: Eligibility, classification, terminals, orchestrator
    finance_core.api: Request-level entry points returning response bodies
    finance_core.report: pandas views and CSV export of a result
    finance_core.config: ProviderSettings configuration

Quick Start:
    >>> from finance_core import JsonStore
    >>> from finance_core.api import fetch_card_transactions
    >>>
    >>> store = JsonStore.from_path("store.json")
    >>> principal = store.principal_for_token("t0k3n")
    >>> response = fetch_card_transactions(store, "2024-05-01", "2024-05-31",
    ...                                    principal=principal)
    >>> response.body["meta"]
    {'currentPage': 1, 'totalPages': 1, 'totalItems': 2}

Grain Reference:
    Card (types 1 and 2): one transaction per provider transaction
    Boleto (type 3): one transaction per paid charge x payment
"""

__version__ = "0.1.0"

from finance_core.config import ProviderSettings
from finance_core.exceptions import (
    AuthorizationError,
    ConfigError,
    ExternalFetchError,
    FatalError,
    FinanceCoreError,
    NotFoundError,
    ProcessingError,
    ValidationError,
)
from finance_core.store import JsonStore, ProviderFamily, ProviderType

__all__ = [
    "AuthorizationError",
    "ConfigError",
    "ExternalFetchError",
    "FatalError",
    "FinanceCoreError",
    "JsonStore",
    "NotFoundError",
    "ProcessingError",
    "ProviderFamily",
    "ProviderSettings",
    "ProviderType",
    "ValidationError",
    "__version__",
]
