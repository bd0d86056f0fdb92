"""JSON-backed store for establishments, terminals, users and access tokens.

The aggregation core only needs simple key and range lookups over four
tables, so the store is a single JSON document whose keys mirror the
relational schema column names:

    {
      "establishments": [
        {"id": 1, "nome": "Loja Centro", "cnpj": "12345678000190",
         "repasse": true, "tipo": 1, "chave": "...", "identificador": "mkt-1",
         "seller": "sel-1", "regiao": 2}
      ],
      "terminals": [
        {"id": 1, "serial": "PAX-001", "descricao": "Caixa 1", "tipo": 1,
         "identificador": "term-abc", "unidade_id": 1}
      ],
      "users": [
        {"id": 1, "nome": "Ana", "cpf": "00000000000", "tipo": 1,
         "status": true, "unidades": [1, 2]}
      ],
      "access_tokens": [
        {"token": "t0k3n", "user_id": 1, "expires_at": "2030-01-01T00:00:00+00:00"}
      ]
    }

Records are validated on load; a store that violates the data-model
constraints raises ConfigError instead of yielding partial data.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum, IntEnum
from pathlib import Path
from typing import Any

from finance_core.exceptions import AuthorizationError, ConfigError

logger = logging.getLogger(__name__)

REGIONS = range(1, 7)


class ProviderType(IntEnum):
    """Which external payment API and credential shape an establishment uses."""

    ZOOP = 1
    SUMCRED = 2
    USE = 3


class ProviderFamily(Enum):
    """Groups of provider types that share one API family.

    CARD covers types 1 and 2 (card terminals, ``type != 3``); BOLETO covers
    type 3 (boleto and PIX receipts, ``type == 3``).
    """

    CARD = "card"
    BOLETO = "boleto"

    def includes(self, provider_type: int) -> bool:
        if self is ProviderFamily.BOLETO:
            return provider_type == ProviderType.USE
        return provider_type != ProviderType.USE


@dataclass(frozen=True)
class Establishment:
    """A merchant registered against one payment provider.

    Attributes:
        id: Primary key.
        name: Display name.
        tax_id: CNPJ, digits only.
        uses_payout: Whether automatic payout (repasse) is enabled.
        provider_type: ProviderType value.
        credential: Provider credential key (Basic key or custom header value).
        account_id: Provider account identifier (marketplace or credenciado).
        seller_id: Provider sub-seller id; required unless provider_type is 3.
        region: Region code, 1 to 6.
    """

    id: int
    name: str
    tax_id: str
    uses_payout: bool
    provider_type: ProviderType
    credential: str
    account_id: str
    seller_id: str | None
    region: int

    @classmethod
    def from_record(cls, rec: dict[str, Any]) -> Establishment:
        try:
            provider_type = ProviderType(int(rec["tipo"]))
        except ValueError as e:
            raise ConfigError(f"Establishment {rec.get('id')!r}: invalid tipo {rec.get('tipo')!r}") from e
        region = int(rec["regiao"])
        if region not in REGIONS:
            raise ConfigError(f"Establishment {rec['id']!r}: regiao must be 1-6, got {region}")
        seller = rec.get("seller") or None
        if provider_type != ProviderType.USE and not seller:
            raise ConfigError(f"Establishment {rec['id']!r}: seller is required unless tipo is 3")
        return cls(
            id=int(rec["id"]),
            name=str(rec["nome"]),
            tax_id=str(rec["cnpj"]),
            uses_payout=bool(rec.get("repasse", False)),
            provider_type=provider_type,
            credential=str(rec["chave"]),
            account_id=str(rec["identificador"]),
            seller_id=seller,
            region=region,
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "nome": self.name,
            "cnpj": self.tax_id,
            "repasse": self.uses_payout,
            "tipo": int(self.provider_type),
            "chave": self.credential,
            "identificador": self.account_id,
            "seller": self.seller_id,
            "regiao": self.region,
        }


@dataclass(frozen=True)
class Terminal:
    """A physical card terminal tied to an establishment."""

    id: int
    serial: str
    description: str | None
    type: int
    provider_id: str
    establishment_id: int

    @property
    def label(self) -> str:
        """Description, or the serial when no description is set."""
        return self.description or self.serial

    @classmethod
    def from_record(cls, rec: dict[str, Any]) -> Terminal:
        return cls(
            id=int(rec["id"]),
            serial=str(rec["serial"]),
            description=rec.get("descricao") or None,
            type=int(rec["tipo"]),
            provider_id=str(rec["identificador"]),
            establishment_id=int(rec["unidade_id"]),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "serial": self.serial,
            "descricao": self.description,
            "tipo": self.type,
            "identificador": self.provider_id,
            "unidade_id": self.establishment_id,
        }


@dataclass(frozen=True)
class User:
    """An authenticated principal.

    Attributes:
        entitled_establishment_ids: Establishments the user may aggregate.
            None or empty means the user has no entitlement.
    """

    id: int
    name: str
    cpf: str
    type: int
    active: bool
    entitled_establishment_ids: tuple[int, ...] | None

    @classmethod
    def from_record(cls, rec: dict[str, Any]) -> User:
        units = rec.get("unidades")
        return cls(
            id=int(rec["id"]),
            name=str(rec["nome"]),
            cpf=str(rec.get("cpf", "")),
            type=int(rec.get("tipo", 0)),
            active=bool(rec.get("status", True)),
            entitled_establishment_ids=tuple(int(u) for u in units) if units is not None else None,
        )


@dataclass(frozen=True)
class AccessToken:
    token: str
    user_id: int
    expires_at: datetime | None

    @classmethod
    def from_record(cls, rec: dict[str, Any]) -> AccessToken:
        raw = rec.get("expires_at")
        expires = datetime.fromisoformat(raw) if raw else None
        if expires is not None and expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        return cls(token=str(rec["token"]), user_id=int(rec["user_id"]), expires_at=expires)


def _index_by_id(records: list[Any], kind: str) -> dict[int, Any]:
    index: dict[int, Any] = {}
    for rec in records:
        if rec.id in index:
            raise ConfigError(f"Duplicate {kind} id {rec.id}")
        index[rec.id] = rec
    return index


class JsonStore:
    """Read-mostly store over a JSON document.

    Example:
        >>> from finance_core.store import JsonStore, ProviderFamily
        >>> store = JsonStore.from_path("store.json")
        >>> [e.name for e in store.find_establishments([1, 2], ProviderFamily.CARD)]
        ['Loja Centro', 'Loja Norte']

    """

    def __init__(self, data: dict[str, Any], path: Path | None = None) -> None:
        """Initialize the store from an already-parsed document.

        Args:
            data: Parsed JSON document.
            path: File to write back to on ``save()``; None for in-memory use.

        Raises:
            ConfigError: If a record is malformed or violates a constraint.

        """
        self.path = path
        try:
            establishments = [Establishment.from_record(r) for r in data.get("establishments", [])]
            self._terminals = [Terminal.from_record(r) for r in data.get("terminals", [])]
            users = [User.from_record(r) for r in data.get("users", [])]
            self._tokens = {
                t.token: t for t in (AccessToken.from_record(r) for r in data.get("access_tokens", []))
            }
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigError(f"Malformed store record: {e}") from e
        self._establishments = _index_by_id(establishments, "establishment")
        self._users = _index_by_id(users, "user")
        self._raw_users = list(data.get("users", []))
        self._raw_tokens = list(data.get("access_tokens", []))
        self._check_unique_tax_ids()

    @classmethod
    def from_path(cls, path: str | Path) -> JsonStore:
        """Load the store from a JSON file.

        Raises:
            ConfigError: If the file is missing, not JSON, or invalid.
        """
        if isinstance(path, str):
            path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to load store {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Store {path} must be a JSON object")
        return cls(data, path=path)

    def _check_unique_tax_ids(self) -> None:
        seen: dict[tuple[str, int, str], int] = {}
        for est in self._establishments.values():
            key = (est.tax_id, int(est.provider_type), est.account_id)
            if key in seen:
                raise ConfigError(
                    f"Establishments {seen[key]} and {est.id} share cnpj {est.tax_id} "
                    f"for tipo {int(est.provider_type)} and identificador {est.account_id}"
                )
            seen[key] = est.id

    # Establishments
    def get_establishment(self, establishment_id: int) -> Establishment | None:
        return self._establishments.get(int(establishment_id))

    def find_establishments(
        self,
        ids: Iterable[int] | None = None,
        family: ProviderFamily | None = None,
    ) -> list[Establishment]:
        """Return establishments matching ``ids`` and ``family``, ordered by name.

        Args:
            ids: Restrict to these primary keys; None means no restriction.
            family: Restrict to one provider family; None means any.

        Returns:
            Establishments sorted by name ascending (id breaks ties).

        """
        wanted = {int(i) for i in ids} if ids is not None else None
        found = [
            e
            for e in self._establishments.values()
            if (wanted is None or e.id in wanted)
            and (family is None or family.includes(e.provider_type))
        ]
        return sorted(found, key=lambda e: (e.name, e.id))

    # Terminals
    def list_terminals(self, establishment_id: int | None = None) -> list[Terminal]:
        if establishment_id is None:
            return list(self._terminals)
        return [t for t in self._terminals if t.establishment_id == establishment_id]

    def add_terminal(
        self,
        serial: str,
        description: str | None,
        terminal_type: int,
        provider_id: str,
        establishment_id: int,
    ) -> Terminal:
        """Insert a terminal and persist the store if it is file-backed.

        Raises:
            ConfigError: If a terminal with the same serial already exists.
        """
        if any(t.serial == serial for t in self._terminals):
            raise ConfigError(f"Terminal with serial {serial!r} already exists")
        next_id = max((t.id for t in self._terminals), default=0) + 1
        terminal = Terminal(
            id=next_id,
            serial=serial,
            description=description,
            type=terminal_type,
            provider_id=provider_id,
            establishment_id=establishment_id,
        )
        self._terminals.append(terminal)
        logger.info("Registered terminal %s (serial %s) for establishment %s", next_id, serial, establishment_id)
        self.save()
        return terminal

    # Users and tokens
    def get_user(self, user_id: int) -> User | None:
        return self._users.get(int(user_id))

    def principal_for_token(self, token: str, now: datetime | None = None) -> User:
        """Resolve an access token to its active user.

        Raises:
            AuthorizationError: If the token is unknown, expired, or its user
                is missing or inactive.
        """
        now = now or datetime.now(timezone.utc)
        record = self._tokens.get(token)
        if record is None:
            raise AuthorizationError("Invalid access token.")
        if record.expires_at is not None and record.expires_at <= now:
            raise AuthorizationError("Access token expired.")
        user = self._users.get(record.user_id)
        if user is None or not user.active:
            raise AuthorizationError("User is not active.")
        return user

    def to_dict(self) -> dict[str, Any]:
        return {
            "establishments": [e.to_record() for e in self._establishments.values()],
            "terminals": [t.to_record() for t in self._terminals],
            "users": self._raw_users,
            "access_tokens": self._raw_tokens,
        }

    def save(self) -> None:
        """Write the store back to its file; no-op for in-memory stores."""
        if self.path is None:
            return
        self.path.write_text(json.dumps(self.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
        logger.debug("Wrote store: %s", self.path)
