"""Shared fixtures: an in-memory store and fake HTTP sessions.

Provider clients accept any object with a ``request(method, url, **kwargs)``
method, so tests drive them with FakeSession instead of the network.
"""

from __future__ import annotations

import json
import threading
from collections.abc import Callable
from typing import Any

import pytest
import requests

from finance_core.config import ProviderSettings
from finance_core.store import JsonStore


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code: int = 200, payload: Any = None, text: str | None = None) -> None:
        self.status_code = status_code
        self._payload = payload
        if text is not None:
            self.text = text
        else:
            self.text = json.dumps(payload) if payload is not None else ""
        self.content = self.text.encode("utf-8")

    def json(self) -> Any:
        return json.loads(self.text)


Handler = Callable[[str, str, dict[str, Any]], Any]


class FakeSession:
    """Records every call and answers from a routing handler.

    The handler receives ``(method, url, kwargs)`` and returns a FakeResponse,
    a plain payload (wrapped in a 200 response), or an exception instance to
    raise.
    """

    def __init__(self, handler: Handler) -> None:
        self.handler = handler
        self.calls: list[tuple[str, str, dict[str, Any]]] = []
        self._lock = threading.Lock()

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        with self._lock:
            self.calls.append((method, url, kwargs))
        answer = self.handler(method, url, kwargs)
        if isinstance(answer, BaseException):
            raise answer
        if isinstance(answer, FakeResponse):
            return answer
        return FakeResponse(200, answer)

    def calls_to(self, fragment: str) -> list[tuple[str, str, dict[str, Any]]]:
        return [c for c in self.calls if fragment in c[1]]


def connection_error() -> requests.ConnectionError:
    return requests.ConnectionError("connection refused")


STORE_DATA: dict[str, Any] = {
    "establishments": [
        {
            "id": 1,
            "nome": "Loja Centro",
            "cnpj": "11111111000101",
            "repasse": True,
            "tipo": 1,
            "chave": "key-centro",
            "identificador": "mkt-1",
            "seller": "sel-centro",
            "regiao": 1,
        },
        {
            "id": 2,
            "nome": "Auto Posto Norte",
            "cnpj": "22222222000102",
            "repasse": False,
            "tipo": 2,
            "chave": "key-norte",
            "identificador": "mkt-1",
            "seller": "sel-norte",
            "regiao": 2,
        },
        {
            "id": 3,
            "nome": "Boletos Sul",
            "cnpj": "33333333000103",
            "repasse": True,
            "tipo": 3,
            "chave": "key-sul",
            "identificador": "cred-sul",
            "seller": None,
            "regiao": 3,
        },
        {
            "id": 4,
            "nome": "Boletos Leste",
            "cnpj": "44444444000104",
            "repasse": False,
            "tipo": 3,
            "chave": "key-leste",
            "identificador": "cred-leste",
            "seller": None,
            "regiao": 4,
        },
        {
            "id": 5,
            "nome": "Mercado Oeste",
            "cnpj": "55555555000105",
            "repasse": False,
            "tipo": 1,
            "chave": "key-oeste",
            "identificador": "mkt-1",
            "seller": "sel-oeste",
            "regiao": 5,
        },
    ],
    "terminals": [
        {
            "id": 1,
            "serial": "PAX-001",
            "descricao": "Caixa 1",
            "tipo": 1,
            "identificador": "pos-local",
            "unidade_id": 1,
        },
        {
            "id": 2,
            "serial": "PAX-002",
            "descricao": None,
            "tipo": 1,
            "identificador": "pos-nodesc",
            "unidade_id": 1,
        },
    ],
    "users": [
        {"id": 1, "nome": "Ana", "cpf": "00000000001", "tipo": 1, "status": True, "unidades": [1, 2, 3, 4, 5]},
        {"id": 2, "nome": "Bruno", "cpf": "00000000002", "tipo": 2, "status": True, "unidades": []},
        {"id": 3, "nome": "Carla", "cpf": "00000000003", "tipo": 2, "status": False, "unidades": [1]},
        {"id": 4, "nome": "Davi", "cpf": "00000000004", "tipo": 2, "status": True, "unidades": [3]},
    ],
    "access_tokens": [
        {"token": "tok-ana", "user_id": 1, "expires_at": "2099-01-01T00:00:00+00:00"},
        {"token": "tok-old", "user_id": 1, "expires_at": "2000-01-01T00:00:00+00:00"},
        {"token": "tok-carla", "user_id": 3, "expires_at": None},
    ],
}


@pytest.fixture
def store_data() -> dict[str, Any]:
    return json.loads(json.dumps(STORE_DATA))


@pytest.fixture
def store(store_data: dict[str, Any]) -> JsonStore:
    return JsonStore(store_data)


@pytest.fixture
def settings() -> ProviderSettings:
    return ProviderSettings(
        zoop_base="https://zoop.test",
        use_base="https://use.test",
        timeout=5.0,
        page_size=2,
        max_attempts=3,
    )


@pytest.fixture
def fake_session() -> Callable[[Handler], FakeSession]:
    """Factory fixture: ``fake_session(handler)`` builds a FakeSession."""
    return FakeSession
