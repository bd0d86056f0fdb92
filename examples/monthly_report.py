"""Example: month of card transactions and boleto receipts to CSV.

Aggregates both provider families for the establishments a user may see
and writes one CSV per family plus a per-establishment summary.
"""

from pathlib import Path

from finance_core import JsonStore
from finance_core.api import fetch_boleto_receipts, fetch_card_transactions
from finance_core.report import export_csv, summary_frame, transactions_frame

# Setup
store = JsonStore.from_path(Path("examples/store.example.json"))
principal = store.principal_for_token("t0k3n")
start_date = "2024-05-01"
end_date = "2024-05-31"
out_dir = Path("out")

for family, fetch in (("cards", fetch_card_transactions), ("receipts", fetch_boleto_receipts)):
    print(f"{family}")
    print("-" * 60)
    response = fetch(store, start_date, end_date, principal=principal, per_page=100)
    if not response.ok:
        print(f"Rejected ({response.status_code}): {response.body['message']}\n")
        continue

    for error in response.body.get("errors", []):
        print(f"  establishment {error['establishment_id']} failed: {error['message']}")

    summary = summary_frame(response.result)
    print(summary.to_string(index=False))
    export_csv(summary, out_dir / f"{family}_summary.csv")
    export_csv(transactions_frame(response.result), out_dir / f"{family}_transactions.csv")
    print()
