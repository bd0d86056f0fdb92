"""Shared types for the aggregation pipeline.

Everything here lives for the duration of one aggregation request; nothing
is persisted or cached across requests. ``to_dict`` methods produce the
wire shape consumed by the HTTP boundary, whose keys follow the existing
frontend contract (``quantidade``, ``total``, ``tarifa``, ``saldo``...).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any


@dataclass(frozen=True)
class NormalizedTransaction:
    """One provider payment in the common shape.

    Card transactions fill ``id``, ``status``, the card digits, ``payment_time``
    and ``terminal``; boleto receipts fill the document, due date, order and
    note fields. Both fill customer, amounts, method and payment date.

    Attributes:
        customer: Holder name (card) or payer company name (boleto).
        amount: Amount paid.
        fee: Provider fee charged on the payment.
        method: Display category from the payment classifier.
        payment_date: YYYY-MM-DD in provider-local time ("" when unknown).
    """

    customer: str
    amount: Decimal
    fee: Decimal
    method: str
    payment_date: str
    status: str = ""
    id: str | None = None
    order_reference: str | None = None
    note: str | None = None
    origin: str | None = None
    boleto_amount: Decimal | None = None
    document_date: str = ""
    due_date: str = ""
    payment_time: str = ""
    card_first_digits: str | None = None
    card_last_digits: str | None = None
    terminal: str | None = None

    def sort_key(self) -> tuple[str, str]:
        """Payment date ascending, then customer name ascending."""
        return (self.payment_date, self.customer)

    def to_dict(self) -> dict[str, Any]:
        if self.id is not None:
            return {
                "id": self.id,
                "status": self.status,
                "total": float(self.amount),
                "forma_pagamento": self.method,
                "cliente": self.customer,
                "primeiros_digitos": self.card_first_digits,
                "ultimos_digitos": self.card_last_digits,
                "data": self.payment_date,
                "hora": self.payment_time,
                "terminal": self.terminal,
                "taxa": float(self.fee),
            }
        return {
            "cliente": self.customer,
            "valor_boleto": float(self.boleto_amount) if self.boleto_amount is not None else None,
            "pedido": self.order_reference,
            "observacao": self.note,
            "origem": self.origin,
            "forma_pagamento": self.method,
            "data_documento": self.document_date,
            "data_vencimento": self.due_date,
            "data_pagamento": self.payment_date,
            "total": float(self.amount),
            "taxa": float(self.fee),
        }


@dataclass(frozen=True)
class EstablishmentSummary:
    """Aggregated result for one establishment over the requested range.

    Attributes:
        count: Number of transactions.
        total: Sum of transaction amounts, rounded to 2 places.
        fee_total: Sum of transaction fees, rounded to 2 places.
        balance: Current balance in the provider's native convention.
        transactions: Sorted by payment date, then customer name.
    """

    establishment_id: int
    name: str
    region: int
    tax_id: str
    uses_payout: bool
    count: int
    total: Decimal
    fee_total: Decimal
    balance: Decimal
    transactions: tuple[NormalizedTransaction, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.establishment_id,
            "estabelecimento": self.name,
            "regiao": self.region,
            "cnpj": self.tax_id,
            "repasse": self.uses_payout,
            "saldo": {
                "quantidade": self.count,
                "total": float(self.total),
                "tarifa": float(self.fee_total),
                "saldo": float(self.balance),
                "transacoes": [t.to_dict() for t in self.transactions],
            },
        }


@dataclass(frozen=True)
class AggregationError:
    """Failure scoped to one establishment."""

    establishment_id: int
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"establishment_id": self.establishment_id, "message": self.message}


@dataclass(frozen=True)
class PageMeta:
    current_page: int
    total_pages: int
    total_items: int

    def to_dict(self) -> dict[str, int]:
        return {
            "currentPage": self.current_page,
            "totalPages": self.total_pages,
            "totalItems": self.total_items,
        }


@dataclass
class AggregationResult:
    """Paginated summaries plus the per-establishment failures of one request."""

    summaries: list[EstablishmentSummary]
    meta: PageMeta
    errors: list[AggregationError] = field(default_factory=list)
