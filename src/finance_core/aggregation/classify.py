"""Payment classification tables.

Pure lookups from provider codes to display strings. Unknown codes fall
through to ``OTHER`` for payment methods and to an empty string for
statuses, so every function here is total and side-effect free.
"""

from __future__ import annotations

from typing import Any

OTHER = "OTHER"

# Card provider payment_type -> display category
CARD_METHODS = {
    "debit": "DEBIT",
    "credit": "CREDIT",
    "pix": "PIX",
}

# Boleto provider (origem_pagamento, tipo_cobranca) -> display category
BOLETO_METHODS = {
    ("PIX", "BOLETO_PIX"): "QRCODE BOLETO",
    ("BOLETO", "BOLETO_PIX"): "BOLETO",
    ("PIX", "PIX_AVULSO"): "PIX",
}

CARD_STATUSES = {
    "succeeded": "SUCCEEDED",
    "canceled": "CANCELED",
}


def classify_card_payment(payment_type: Any) -> str:
    """Map a card provider ``payment_type`` to its display category.

    Examples:
        >>> classify_card_payment("credit")
        'CREDIT'
        >>> classify_card_payment(3)
        'OTHER'
    """
    if isinstance(payment_type, str):
        return CARD_METHODS.get(payment_type, OTHER)
    return OTHER


def classify_boleto_payment(payment_origin: Any, charge_type: Any) -> str:
    """Map a boleto provider (payment origin, charge type) pair to its category.

    A PIX payment on a BOLETO_PIX charge is a QR code paid boleto, which is
    reported separately from a standalone PIX charge.

    Examples:
        >>> classify_boleto_payment("PIX", "BOLETO_PIX")
        'QRCODE BOLETO'
        >>> classify_boleto_payment("BOLETO", "PIX_AVULSO")
        'OTHER'
    """
    if not (isinstance(payment_origin, str) and isinstance(charge_type, str)):
        return OTHER
    return BOLETO_METHODS.get((payment_origin, charge_type), OTHER)


def classify_card_status(status: Any) -> str:
    if isinstance(status, str):
        return CARD_STATUSES.get(status, "")
    return ""
