"""Terminal resolution and registration.

A card transaction names its terminal by the provider's point-of-sale
identifier. Resolution prefers the locally registered terminals and falls
back to one remote lookup per identifier; when neither works the label is
the ``TERMINAL NOT FOUND`` sentinel. Resolution never raises.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from finance_core.exceptions import ConfigError, NotFoundError, ValidationError

if TYPE_CHECKING:
    from finance_core.providers.zoop import ZoopClient
    from finance_core.store import JsonStore, Terminal

logger = logging.getLogger(__name__)

TERMINAL_NOT_FOUND = "TERMINAL NOT FOUND"


def _point_of_sale_id(transaction: dict[str, Any]) -> str | None:
    pos = transaction.get("point_of_sale") or {}
    ident = pos.get("identification_number")
    return str(ident) if ident else None


class TerminalResolver:
    """Resolve point-of-sale identifiers to terminal labels for one request.

    The local terminal list is read-only and may be shared by every
    establishment processed in the request. Remote answers are remembered
    for the lifetime of the resolver only.

    Example:
        >>> resolver = TerminalResolver(store.list_terminals(), zoop_client)
        >>> resolver.resolve(raw_transaction, establishment.credential)
        'Caixa 1'

    """

    def __init__(self, local_terminals: Iterable[Terminal], client: ZoopClient | None = None) -> None:
        self._local = {t.provider_id: t for t in local_terminals}
        self._client = client
        self._remote: dict[str, str] = {}

    def resolve(self, transaction: dict[str, Any], credential: str) -> str:
        """Return the terminal label for a raw card transaction.

        Args:
            transaction: Raw provider transaction.
            credential: Establishment credential used for the remote lookup.

        Returns:
            Local description (or serial), the remote serial, or
            TERMINAL_NOT_FOUND.

        """
        try:
            ident = _point_of_sale_id(transaction)
            if not ident:
                return TERMINAL_NOT_FOUND

            local = self._local.get(ident)
            if local is not None:
                return local.label

            if ident in self._remote:
                return self._remote[ident]
            if self._client is None:
                return TERMINAL_NOT_FOUND

            remote = self._client.get_terminal(ident, credential)
            label = str(remote.get("serial_number") or "") or TERMINAL_NOT_FOUND
        except Exception as e:
            logger.warning("Terminal lookup failed for transaction %s: %s", transaction.get("id"), e)
            return TERMINAL_NOT_FOUND
        self._remote[ident] = label
        return label


def resolve_terminal_label(
    transaction: dict[str, Any],
    credential: str,
    local_terminals: Iterable[Terminal],
    client: ZoopClient | None = None,
) -> str:
    """One-shot form of ``TerminalResolver.resolve``."""
    return TerminalResolver(local_terminals, client).resolve(transaction, credential)


def register_terminal(
    store: JsonStore,
    client: ZoopClient,
    serial: str,
    description: str | None,
    terminal_type: int,
    establishment_id: int,
) -> Terminal:
    """Register a terminal after confirming its serial with the card provider.

    The provider identifier and canonical serial come from the provider's
    search-by-serial answer, authenticated with the owning establishment's key.

    Raises:
        NotFoundError: If the establishment is unknown or the provider has no
            terminal with that serial.
        ValidationError: If a terminal with that serial is already registered.
        ExternalFetchError: If the provider search fails.

    """
    establishment = store.get_establishment(establishment_id)
    if establishment is None:
        raise NotFoundError(f"Establishment {establishment_id} not found.")

    found = client.search_terminal(serial, establishment.credential)
    if not found:
        raise NotFoundError(f"Terminal with serial {serial} not found at the provider.")

    try:
        return store.add_terminal(
            serial=str(found.get("serial_number") or serial),
            description=description,
            terminal_type=terminal_type,
            provider_id=str(found["id"]),
            establishment_id=establishment.id,
        )
    except KeyError as e:
        raise NotFoundError(f"Terminal with serial {serial} has no provider id.") from e
    except ConfigError as e:
        raise ValidationError(str(e)) from e
