from __future__ import annotations

import logging
from typing import Any

import requests
from pydantic import ValidationError
from requests import Response
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

from swap_simulator.config import config
from swap_simulator.domain.prices import PriceEntry

logger = logging.getLogger(__name__)


class PriceFeedAPIError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None, payload: Any | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class PriceFeedClient:
    """Fetches the raw ``[{currency, date, price}, ...]`` feed.

    Records are returned in feed order; duplicates are left for the price table
    builder to resolve.
    """

    def __init__(
        self,
        *,
        url: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
        retry_attempts: int | None = None,
        retry_backoff_seconds: float | None = None,
    ) -> None:
        settings = config()
        self.url = url or settings.price_feed_url
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds
        self._session = session or requests.Session()

        retries = Retry(
            total=retry_attempts if retry_attempts is not None else settings.http_retry_attempts,
            backoff_factor=(
                retry_backoff_seconds if retry_backoff_seconds is not None else settings.http_retry_backoff_seconds
            ),
            status_forcelist=[429],
            allowed_methods=frozenset({"GET"}),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retries)
        self._session.mount("https://", adapter)
        self._session.mount("http://", adapter)

    def fetch_entries(self) -> list[PriceEntry]:
        payload = self._request()
        entries: list[PriceEntry] = []
        for index, record in enumerate(payload):
            if not isinstance(record, dict):
                raise PriceFeedAPIError(f"Price feed record #{index} is not an object", payload=record)
            try:
                entries.append(PriceEntry.model_validate(record))
            except ValidationError as exc:
                raise PriceFeedAPIError(f"Price feed record #{index} is malformed: {exc}", payload=record) from exc

        logger.info("Fetched %d price feed records from %s", len(entries), self.url)
        return entries

    def _request(self) -> list[Any]:
        try:
            response = self._session.request("GET", self.url, timeout=self.timeout)
            response.raise_for_status()
        except requests.HTTPError as exc:
            resp = exc.response
            status_code = getattr(resp, "status_code", None)
            raise PriceFeedAPIError(
                "Price feed request failed", status_code=status_code, payload=self._error_payload(resp)
            ) from exc
        except requests.RequestException as exc:
            status_code = getattr(getattr(exc, "response", None), "status_code", None)
            raise PriceFeedAPIError("Price feed request failed", status_code=status_code) from exc

        try:
            payload_raw = response.json()
        except ValueError as exc:
            raise PriceFeedAPIError("Price feed returned invalid JSON", payload=response.text) from exc

        if not isinstance(payload_raw, list):
            raise PriceFeedAPIError("Price feed returned unexpected payload type", payload=payload_raw)
        return payload_raw

    @staticmethod
    def _error_payload(response: Response | None) -> Any | None:
        if response is None:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text


__all__ = ["PriceFeedAPIError", "PriceFeedClient"]
