"""Unified configuration for Finance Core.

This module provides a single configuration class shared by both payment
provider clients and the aggregation pipeline.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from finance_core.exceptions import ConfigError

DEFAULT_ZOOP_BASE = "https://api.zoop.ws"
DEFAULT_USE_BASE = "https://api.useboletos.com.br"


def _env_number(name: str, default: str, cast: type) -> int | float:
    raw = os.environ.get(name, default)
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e


@dataclass
class ProviderSettings:
    """Endpoints and limits used when talking to the payment providers.

    Attributes:
        zoop_base: Base URL of the card provider API (types 1 and 2).
        use_base: Base URL of the boleto/PIX provider API (type 3).
        timeout: Timeout in seconds applied to every external call.
        connect_retries: Transport-level retries on connection errors only.
        page_size: Items requested per page from paginated endpoints.
        max_attempts: Whole-fetch attempts before an establishment fails.
        utc_offset_hours: Provider-local offset for day windows and times.
    """

    zoop_base: str = DEFAULT_ZOOP_BASE
    use_base: str = DEFAULT_USE_BASE
    timeout: float = 60.0
    connect_retries: int = 0
    page_size: int = 1000
    max_attempts: int = 3
    utc_offset_hours: int = -4

    def __post_init__(self) -> None:
        self.zoop_base = self.zoop_base.rstrip("/")
        self.use_base = self.use_base.rstrip("/")
        if self.page_size < 1:
            raise ConfigError(f"page_size must be positive, got {self.page_size}")
        if self.max_attempts < 1:
            raise ConfigError(f"max_attempts must be positive, got {self.max_attempts}")
        if self.timeout <= 0:
            raise ConfigError(f"timeout must be positive, got {self.timeout}")

    @classmethod
    def from_env(cls) -> ProviderSettings:
        """Build settings from ``FIN_*`` environment variables.

        Unset variables fall back to the in-code defaults.

        Returns:
            ProviderSettings instance.

        Raises:
            ConfigError: If a numeric variable cannot be parsed.

        Examples:
            >>> settings = ProviderSettings.from_env()
            >>> settings.page_size
            1000
        """
        return cls(
            zoop_base=os.environ.get("FIN_ZOOP_BASE", DEFAULT_ZOOP_BASE),
            use_base=os.environ.get("FIN_USE_BASE", DEFAULT_USE_BASE),
            timeout=float(_env_number("FIN_TIMEOUT", "60", float)),
            connect_retries=int(_env_number("FIN_CONNECT_RETRIES", "0", int)),
            page_size=int(_env_number("FIN_PAGE_SIZE", "1000", int)),
            max_attempts=int(_env_number("FIN_MAX_ATTEMPTS", "3", int)),
            utc_offset_hours=int(_env_number("FIN_UTC_OFFSET_HOURS", "-4", int)),
        )
