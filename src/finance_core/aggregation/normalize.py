"""Normalization of raw provider records into NormalizedTransaction.

Card providers yield one transaction per raw record. The boleto provider
yields receipts (paid charges) that each carry a list of payments; every
(receipt x payment) pair becomes one transaction.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from finance_core.aggregation.classify import (
    classify_boleto_payment,
    classify_card_payment,
    classify_card_status,
)
from finance_core.aggregation.types import NormalizedTransaction
from finance_core.exceptions import ProcessingError
from finance_core.utils import format_date, format_time, to_decimal

if TYPE_CHECKING:
    from finance_core.aggregation.terminals import TerminalResolver
    from finance_core.store import Establishment

Normalizer = Callable[[list[dict[str, Any]], "Establishment"], list[NormalizedTransaction]]


def normalize_card_transaction(
    transaction: dict[str, Any],
    establishment: Establishment,
    resolver: TerminalResolver,
    utc_offset_hours: int = -4,
) -> NormalizedTransaction:
    """Build the common shape for one card transaction.

    Missing holder names read as "" and missing card digits as "0000". Date
    and time come from ``updated_at`` in provider-local time.
    """
    card = transaction.get("payment_method") or {}
    updated_at = transaction.get("updated_at")
    return NormalizedTransaction(
        id=str(transaction.get("id", "")),
        status=classify_card_status(transaction.get("status")),
        amount=to_decimal(transaction.get("amount")),
        fee=to_decimal(transaction.get("fees")),
        method=classify_card_payment(transaction.get("payment_type")),
        customer=card.get("holder_name") or "",
        card_first_digits=card.get("first4_digits") or "0000",
        card_last_digits=card.get("last4_digits") or "0000",
        payment_date=format_date(updated_at, utc_offset_hours),
        payment_time=format_time(updated_at, utc_offset_hours),
        terminal=resolver.resolve(transaction, establishment.credential),
    )


def normalize_boleto_receipts(
    receipts: list[dict[str, Any]],
    utc_offset_hours: int = -4,
) -> list[NormalizedTransaction]:
    """Flatten receipts into one transaction per payment."""
    transactions: list[NormalizedTransaction] = []
    for receipt in receipts:
        charge_type = receipt.get("tipo_cobranca")
        for payment in receipt.get("pagamentos") or []:
            transactions.append(
                NormalizedTransaction(
                    customer=receipt.get("sacado_razao") or "",
                    boleto_amount=to_decimal(receipt.get("valor_cobranca")),
                    order_reference=receipt.get("pedido_numero"),
                    note=receipt.get("observacao"),
                    origin=charge_type,
                    method=classify_boleto_payment(payment.get("origem_pagamento"), charge_type),
                    document_date=format_date(receipt.get("data_documento"), utc_offset_hours),
                    due_date=format_date(receipt.get("data_vencimento"), utc_offset_hours),
                    payment_date=format_date(payment.get("data_quitacao"), utc_offset_hours),
                    amount=to_decimal(payment.get("valor_pago")),
                    fee=to_decimal(payment.get("valor_taxa_credenciado")),
                )
            )
    return transactions


def card_normalizer(resolver: TerminalResolver, utc_offset_hours: int = -4) -> Normalizer:
    """Normalizer for card providers, resolving terminals through ``resolver``."""

    def normalize(raw: list[dict[str, Any]], establishment: Establishment) -> list[NormalizedTransaction]:
        try:
            return [
                normalize_card_transaction(tx, establishment, resolver, utc_offset_hours) for tx in raw
            ]
        except (ValueError, AttributeError) as e:
            raise ProcessingError(f"Malformed card transaction: {e}") from e

    return normalize


def boleto_normalizer(utc_offset_hours: int = -4) -> Normalizer:
    """Normalizer for the boleto provider."""

    def normalize(raw: list[dict[str, Any]], establishment: Establishment) -> list[NormalizedTransaction]:
        try:
            return normalize_boleto_receipts(raw, utc_offset_hours)
        except (ValueError, AttributeError) as e:
            raise ProcessingError(f"Malformed paid charge: {e}") from e

    return normalize
