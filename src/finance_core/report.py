"""Tabular views of an aggregation result.

Summaries are nested (establishment -> transactions); these helpers flatten
them into pandas DataFrames for analysis and CSV export, one row per
establishment or one row per transaction.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import pandas as pd

if TYPE_CHECKING:
    from finance_core.aggregation.types import AggregationResult

logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = [
    "establishment_id",
    "estabelecimento",
    "regiao",
    "cnpj",
    "repasse",
    "quantidade",
    "total",
    "tarifa",
    "saldo",
]


def summary_frame(result: AggregationResult) -> pd.DataFrame:
    """One row per establishment summary, in result order."""
    rows = [
        {
            "establishment_id": s.establishment_id,
            "estabelecimento": s.name,
            "regiao": s.region,
            "cnpj": s.tax_id,
            "repasse": s.uses_payout,
            "quantidade": s.count,
            "total": float(s.total),
            "tarifa": float(s.fee_total),
            "saldo": float(s.balance),
        }
        for s in result.summaries
    ]
    return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)


def transactions_frame(result: AggregationResult) -> pd.DataFrame:
    """One row per transaction, establishment columns first.

    Columns are the union of card and boleto transaction fields; fields a
    provider does not fill are left empty.
    """
    rows = []
    for s in result.summaries:
        for t in s.transactions:
            row = {"establishment_id": s.establishment_id, "estabelecimento": s.name}
            row.update(t.to_dict())
            rows.append(row)
    df = pd.DataFrame(rows)
    if df.empty:
        return pd.DataFrame(columns=["establishment_id", "estabelecimento"])
    return df


def export_csv(df: pd.DataFrame, output_path: Path | str) -> Path:
    """Write a frame as UTF-8 CSV with BOM, creating parent directories."""
    if isinstance(output_path, str):
        output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(output_path, index=False, encoding="utf-8-sig")
    logger.info("Wrote %d row(s) to %s", len(df), output_path)
    return output_path
