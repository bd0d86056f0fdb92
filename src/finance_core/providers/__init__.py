"""Payment provider clients.

- ``ZoopClient``: card transactions and terminals (establishment types 1 and 2)
- ``UseClient``: boleto/PIX paid charges and payouts (establishment type 3)

Example:
    >>> from finance_core.providers import ZoopClient
    >>> client = ZoopClient()
    >>> start, end = client.date_window(date(2024, 5, 1), date(2024, 5, 31))
    >>> raw = client.fetch_transactions(establishment, start, end)
"""

from finance_core.providers.base import PaymentClient, fetch_all_pages
from finance_core.providers.use import UseClient
from finance_core.providers.zoop import ZoopClient

__all__ = ["PaymentClient", "UseClient", "ZoopClient", "fetch_all_pages"]
