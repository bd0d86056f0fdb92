"""Tests for the provider clients and the bounded-attempt page loop."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from finance_core.exceptions import ExternalFetchError
from finance_core.providers.base import fetch_all_pages
from finance_core.providers.use import UseClient
from finance_core.providers.zoop import TRANSACTION_STATUSES, ZoopClient
from tests.conftest import FakeResponse, FakeSession, connection_error


class TestFetchAllPages:
    def test_concatenates_pages_in_order(self) -> None:
        pages = {1: [{"n": 1}, {"n": 2}], 2: [{"n": 3}], 3: [{"n": 4}]}
        requested = []

        def fetch_page(page):
            requested.append(page)
            return pages[page], 3

        items = fetch_all_pages(fetch_page, 3, "test")
        assert [i["n"] for i in items] == [1, 2, 3, 4]
        assert requested == [1, 2, 3]

    def test_missing_item_list_is_empty_result(self) -> None:
        assert fetch_all_pages(lambda page: (None, 0), 3, "test") == []

    def test_failure_restarts_from_first_page(self) -> None:
        requested = []
        failures = {"left": 1}

        def fetch_page(page):
            requested.append(page)
            if page == 2 and failures["left"]:
                failures["left"] -= 1
                raise ExternalFetchError("HTTP 503")
            return [{"page": page}], 2

        items = fetch_all_pages(fetch_page, 3, "test")
        assert requested == [1, 2, 1, 2]
        # no duplicates from the aborted attempt
        assert items == [{"page": 1}, {"page": 2}]

    def test_gives_up_after_max_attempts(self) -> None:
        calls = []

        def fetch_page(page):
            calls.append(page)
            raise ExternalFetchError("HTTP 500")

        with pytest.raises(ExternalFetchError, match="failed after 3 attempts"):
            fetch_all_pages(fetch_page, 3, "test")
        assert len(calls) == 3

    def test_other_errors_are_not_retried(self) -> None:
        calls = []

        def fetch_page(page):
            calls.append(page)
            raise KeyError("boom")

        with pytest.raises(KeyError):
            fetch_all_pages(fetch_page, 3, "test")
        assert calls == [1]


def zoop_handler(pages, balance=None, fail_times=0):
    """Route transaction pages and the balance call; fail the first N transaction calls."""
    state = {"failures": fail_times}

    def handler(method, url, kwargs):
        if url.endswith("/balances"):
            return balance if balance is not None else {"items": {}}
        if state["failures"]:
            state["failures"] -= 1
            return FakeResponse(503, text="unavailable")
        page = kwargs["params"]["page"]
        return {"items": pages[page - 1], "total_pages": len(pages)}

    return handler


class TestZoopClient:
    def test_date_window_covers_local_days(self, settings) -> None:
        client = ZoopClient(settings, FakeSession(lambda m, u, kw: {}))
        assert client.date_window(date(2024, 5, 1), date(2024, 5, 31)) == (
            "2024-05-01T04:00:00.000Z",
            "2024-06-01T03:59:59.999Z",
        )

    def test_fetch_transactions_paginates(self, settings, store) -> None:
        session = FakeSession(zoop_handler([[{"id": "a"}, {"id": "b"}], [{"id": "c"}]]))
        client = ZoopClient(settings, session)
        est = store.get_establishment(1)

        items = client.fetch_transactions(est, "S", "E")

        assert [i["id"] for i in items] == ["a", "b", "c"]
        assert len(session.calls) == 2
        method, url, kwargs = session.calls[0]
        assert method == "GET"
        assert url == "https://zoop.test/v1/marketplaces/mkt-1/sellers/sel-centro/transactions"
        assert kwargs["params"] == {
            "limit": 2,
            "page": 1,
            "offset": 0,
            "date_range[gte]": "S",
            "date_range[lte]": "E",
            "status": TRANSACTION_STATUSES,
        }
        assert kwargs["headers"] == {"Authorization": "Basic key-centro"}

    def test_retry_restarts_pagination(self, settings, store) -> None:
        session = FakeSession(zoop_handler([[{"id": "a"}], [{"id": "b"}]], fail_times=1))
        items = ZoopClient(settings, session).fetch_transactions(store.get_establishment(1), "S", "E")
        assert [i["id"] for i in items] == ["a", "b"]
        assert [c[2]["params"]["page"] for c in session.calls] == [1, 1, 2]

    def test_three_failures_raise(self, settings, store) -> None:
        session = FakeSession(lambda m, u, kw: connection_error())
        with pytest.raises(ExternalFetchError):
            ZoopClient(settings, session).fetch_transactions(store.get_establishment(1), "S", "E")
        assert len(session.calls) == 3

    def test_invalid_page_count_is_retried(self, settings, store) -> None:
        session = FakeSession(lambda m, u, kw: {"items": [{"id": "a"}], "total_pages": "many"})
        with pytest.raises(ExternalFetchError, match="total_pages"):
            ZoopClient(settings, session).fetch_transactions(store.get_establishment(1), "S", "E")
        assert len(session.calls) == 3

    def test_missing_items_is_empty(self, settings, store) -> None:
        session = FakeSession(lambda m, u, kw: {"total_pages": 0})
        assert ZoopClient(settings, session).fetch_transactions(store.get_establishment(1), "S", "E") == []
        assert len(session.calls) == 1

    def test_balance_converts_cents(self, settings, store) -> None:
        session = FakeSession(zoop_handler([], balance={"items": {"current_balance": 123456}}))
        assert ZoopClient(settings, session).fetch_balance(store.get_establishment(1)) == Decimal("1234.56")

    def test_balance_rounds_half_up(self, settings, store) -> None:
        session = FakeSession(zoop_handler([], balance={"items": {"current_balance": "100.5"}}))
        assert ZoopClient(settings, session).fetch_balance(store.get_establishment(1)) == Decimal("1.01")

    def test_missing_balance_is_zero(self, settings, store) -> None:
        session = FakeSession(zoop_handler([]))
        assert ZoopClient(settings, session).fetch_balance(store.get_establishment(1)) == Decimal("0.00")

    def test_balance_http_error(self, settings, store) -> None:
        session = FakeSession(lambda m, u, kw: FakeResponse(401, text="unauthorized"))
        with pytest.raises(ExternalFetchError, match="HTTP 401"):
            ZoopClient(settings, session).fetch_balance(store.get_establishment(1))

    def test_search_terminal_shapes(self, settings) -> None:
        found = {"id": "pos-1", "serial_number": "SN"}
        for body in ([found], {"items": [found]}, found):
            client = ZoopClient(settings, FakeSession(lambda m, u, kw, body=body: body))
            assert client.search_terminal("SN", "key") == found
        for body in ([], {"items": []}, {"message": "none"}):
            client = ZoopClient(settings, FakeSession(lambda m, u, kw, body=body: body))
            assert client.search_terminal("SN", "key") is None


class TestUseClient:
    def test_date_window_is_iso_dates(self, settings) -> None:
        client = UseClient(settings, FakeSession(lambda m, u, kw: {}))
        assert client.date_window(date(2024, 5, 1), date(2024, 5, 2)) == ("2024-05-01", "2024-05-02")

    def test_fetch_transactions_bare_list(self, settings, store) -> None:
        session = FakeSession(lambda m, u, kw: [{"pedido_numero": "1"}, {"pedido_numero": "2"}])
        items = UseClient(settings, session).fetch_transactions(store.get_establishment(3), "2024-05-01", "2024-05-02")
        assert len(items) == 2
        method, url, kwargs = session.calls[0]
        assert method == "POST"
        assert url == "https://use.test/credenciados/v1/cred-sul/cobrancas-pagas"
        assert kwargs["params"] == {"data_inicio": "2024-05-01", "data_fim": "2024-05-02"}
        assert kwargs["headers"]["X-Credenciado-Chave"] == "key-sul"

    def test_fetch_transactions_paged_object(self, settings, store) -> None:
        def handler(method, url, kwargs):
            page = kwargs["params"].get("page", 1)
            return {"items": [{"pedido_numero": str(page)}], "total_pages": 2}

        session = FakeSession(handler)
        items = UseClient(settings, session).fetch_transactions(store.get_establishment(3), "a", "b")
        assert [i["pedido_numero"] for i in items] == ["1", "2"]
        assert "page" not in session.calls[0][2]["params"]
        assert session.calls[1][2]["params"]["page"] == 2

    def test_invalid_page_count_is_retried(self, settings, store) -> None:
        session = FakeSession(lambda m, u, kw: {"items": [], "total_pages": {"n": 2}})
        with pytest.raises(ExternalFetchError, match="total_pages"):
            UseClient(settings, session).fetch_transactions(store.get_establishment(3), "a", "b")
        assert len(session.calls) == 3

    def test_unexpected_shape_fails_after_attempts(self, settings, store) -> None:
        session = FakeSession(lambda m, u, kw: {"erro": "x"})
        with pytest.raises(ExternalFetchError):
            UseClient(settings, session).fetch_transactions(store.get_establishment(3), "a", "b")
        assert len(session.calls) == 3

    def test_non_json_body_is_fetch_error(self, settings, store) -> None:
        session = FakeSession(lambda m, u, kw: FakeResponse(200, text="<html>"))
        with pytest.raises(ExternalFetchError):
            UseClient(settings, session).fetch_transactions(store.get_establishment(3), "a", "b")

    def test_balance_passes_through(self, settings, store) -> None:
        session = FakeSession(lambda m, u, kw: {"saldo_atual": "1520.456"})
        balance = UseClient(settings, session).fetch_balance(store.get_establishment(3))
        assert balance == Decimal("1520.456")
        assert session.calls[0][1] == "https://use.test/credenciados/v1/cred-sul/saldo"

    def test_non_finite_balance_is_fetch_error(self, settings, store) -> None:
        session = FakeSession(lambda m, u, kw: {"saldo_atual": "NaN"})
        with pytest.raises(ExternalFetchError, match="finite"):
            UseClient(settings, session).fetch_balance(store.get_establishment(3))

    def test_request_payout(self, settings, store) -> None:
        session = FakeSession(lambda m, u, kw: {"ok": True})
        UseClient(settings, session).request_payout(store.get_establishment(3))
        method, url, _ = session.calls[0]
        assert (method, url) == ("POST", "https://use.test/credenciados/v1/cred-sul/repasse")
