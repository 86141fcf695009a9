from __future__ import annotations

import logging
from typing import Any, Iterable

import requests

from swap_simulator.config import config

logger = logging.getLogger(__name__)


class TokenIconAPIError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None, payload: Any | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class TokenIconClient:
    """Lists SVG icon filenames from a GitHub contents listing."""

    def __init__(
        self,
        *,
        listing_url: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        settings = config()
        self.listing_url = listing_url or settings.token_icons_listing_url
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds
        self._session = session or requests.Session()

    def list_icon_names(self) -> list[str]:
        try:
            response = self._session.request("GET", self.listing_url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            status_code = getattr(getattr(exc, "response", None), "status_code", None)
            raise TokenIconAPIError("Token icon listing request failed", status_code=status_code) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise TokenIconAPIError("Token icon listing returned invalid JSON", payload=response.text) from exc
        if not isinstance(payload, list):
            raise TokenIconAPIError("Token icon listing returned unexpected payload type", payload=payload)

        names = [
            item["name"]
            for item in payload
            if isinstance(item, dict) and isinstance(item.get("name"), str) and item["name"].endswith(".svg")
        ]
        logger.info("Found %d token icons at %s", len(names), self.listing_url)
        return names


class IconResolver:
    """Maps currency codes to icon URLs."""

    def __init__(self, icon_names: Iterable[str], *, base_url: str | None = None) -> None:
        self.base_url = (base_url or config().token_icons_base_url).rstrip("/")
        self._by_lower = {name.lower(): name for name in icon_names}

    def icon_name(self, code: str) -> str:
        # Falls back to "<code>.svg" when the listing has no case-insensitive match.
        return self._by_lower.get(f"{code.lower()}.svg", f"{code}.svg")

    def icon_url(self, code: str) -> str:
        return f"{self.base_url}/{self.icon_name(code)}"


__all__ = ["IconResolver", "TokenIconAPIError", "TokenIconClient"]
