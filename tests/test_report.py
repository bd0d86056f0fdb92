"""Tests for DataFrame views and CSV export."""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pandas as pd

from finance_core.aggregation.types import (
    AggregationResult,
    EstablishmentSummary,
    NormalizedTransaction,
    PageMeta,
)
from finance_core.report import SUMMARY_COLUMNS, export_csv, summary_frame, transactions_frame


def make_result() -> AggregationResult:
    card = NormalizedTransaction(
        customer="José",
        amount=Decimal("10.00"),
        fee=Decimal("0.30"),
        method="CREDIT",
        payment_date="2024-05-02",
        status="SUCCEEDED",
        id="tx-1",
        payment_time="09:15",
        card_first_digits="4111",
        card_last_digits="1111",
        terminal="Caixa 1",
    )
    summaries = [
        EstablishmentSummary(1, "Loja Centro", 1, "111", True, 1, Decimal("10.00"), Decimal("0.30"), Decimal("5.00"), (card,)),
        EstablishmentSummary(5, "Mercado Oeste", 5, "555", False, 0, Decimal("0.00"), Decimal("0.00"), Decimal("0.00")),
    ]
    return AggregationResult(summaries=summaries, meta=PageMeta(1, 1, 2))


def test_summary_frame() -> None:
    df = summary_frame(make_result())
    assert list(df.columns) == SUMMARY_COLUMNS
    assert df["estabelecimento"].tolist() == ["Loja Centro", "Mercado Oeste"]
    assert df.loc[0, "total"] == 10.0
    assert df.loc[1, "quantidade"] == 0


def test_transactions_frame_one_row_per_transaction() -> None:
    df = transactions_frame(make_result())
    assert len(df) == 1
    assert list(df.columns[:2]) == ["establishment_id", "estabelecimento"]
    assert df.loc[0, "terminal"] == "Caixa 1"
    assert df.loc[0, "hora"] == "09:15"


def test_transactions_frame_empty() -> None:
    empty = AggregationResult(summaries=[], meta=PageMeta(1, 0, 0))
    df = transactions_frame(empty)
    assert df.empty
    assert "establishment_id" in df.columns


def test_export_csv_utf8_sig(tmp_path: Path) -> None:
    out = export_csv(transactions_frame(make_result()), tmp_path / "nested" / "tx.csv")
    raw = out.read_bytes()
    assert raw.startswith(b"\xef\xbb\xbf")
    back = pd.read_csv(out, encoding="utf-8-sig")
    assert back.loc[0, "cliente"] == "José"
