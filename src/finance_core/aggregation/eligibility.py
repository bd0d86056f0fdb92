"""Establishment eligibility for an aggregation request.

Decides which establishments a request may aggregate, before any external
call is made.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from finance_core.exceptions import AuthorizationError, NotFoundError

if TYPE_CHECKING:
    from finance_core.store import Establishment, JsonStore, ProviderFamily

logger = logging.getLogger(__name__)


def resolve_eligible(
    store: JsonStore,
    requested_ids: Iterable[int] | None,
    entitled_ids: Iterable[int] | None,
    family: ProviderFamily,
    trusted: bool = False,
) -> list[Establishment]:
    """Return the establishments a request may aggregate, ordered by name.

    An explicit, non-empty id list is intersected with the principal's
    entitled set; without explicit ids the entitled set itself is used. An
    empty entitlement is an authorization failure rather than an empty
    result, whether or not ids were given. Trusted callers (operators) skip
    the entitlement check: their explicit ids are used as given, and no ids
    means every establishment of the family.

    Args:
        store: Establishment store.
        requested_ids: Establishment ids named by the request, or None.
        entitled_ids: The authenticated principal's entitled ids, or None.
        family: Provider family filter (card: ``type != 3``, boleto: ``type == 3``).
        trusted: Bypass entitlements; only for operator tooling.

    Returns:
        Matching establishments sorted by name ascending.

    Raises:
        AuthorizationError: The principal has no entitled establishments.
        NotFoundError: Nothing of the requested provider family remains.

    """
    requested = [int(i) for i in requested_ids] if requested_ids else []
    entitled = [int(i) for i in entitled_ids] if entitled_ids else []

    ids: list[int] | None
    if trusted:
        ids = requested or None
    elif not entitled:
        raise AuthorizationError("User has no establishments associated for access.")
    elif requested:
        allowed = set(entitled)
        ids = [i for i in requested if i in allowed]
    else:
        ids = entitled

    establishments = store.find_establishments(ids, family)
    if not establishments:
        raise NotFoundError(f"No establishments of type {family.value} found.")

    logger.debug("Eligible establishments (%s): %s", family.value, [e.id for e in establishments])
    return establishments
