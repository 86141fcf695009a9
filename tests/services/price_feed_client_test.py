from __future__ import annotations

from decimal import Decimal
from typing import Any
from unittest.mock import Mock

import pytest
import requests

from swap_simulator.domain.prices import build_price_table
from swap_simulator.services.price_feed_client import PriceFeedAPIError, PriceFeedClient


def _mock_response(payload: Any, status_code: int = 200) -> Mock:
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    response.text = "payload"
    response.raise_for_status.return_value = None
    return response


def test_fetch_entries_parses_feed_in_order() -> None:
    session = Mock()
    payload = [
        {"currency": "BLUR", "date": "2023-08-29T07:10:40.000Z", "price": 0.5},
        {"currency": "ETH", "date": "2023-08-29T07:10:52.000Z", "price": 1645.5},
        {"currency": "ETH", "date": "2023-08-29T07:10:40.000Z", "price": 1600},
    ]
    session.request.return_value = _mock_response(payload)

    client = PriceFeedClient(url="https://feed.test/prices.json", session=session)
    entries = client.fetch_entries()

    assert [entry.currency for entry in entries] == ["BLUR", "ETH", "ETH"]
    assert entries[1].price == Decimal("1645.5")
    assert build_price_table(entries).price_of("ETH") == Decimal("1645.5")

    session.request.assert_called_once()
    assert session.request.call_args.args == ("GET", "https://feed.test/prices.json")
    assert session.request.call_args.kwargs["timeout"] == 10.0


def test_fetch_entries_wraps_http_errors() -> None:
    session = Mock()
    error_response = Mock()
    error_response.status_code = 503
    error_response.json.return_value = {"message": "unavailable"}
    response = _mock_response([])
    response.raise_for_status.side_effect = requests.HTTPError(response=error_response)
    session.request.return_value = response

    client = PriceFeedClient(url="https://feed.test/prices.json", session=session)

    with pytest.raises(PriceFeedAPIError) as exc_info:
        client.fetch_entries()

    assert exc_info.value.status_code == 503
    assert exc_info.value.payload == {"message": "unavailable"}


def test_fetch_entries_wraps_connection_errors() -> None:
    session = Mock()
    session.request.side_effect = requests.ConnectionError("down")

    client = PriceFeedClient(url="https://feed.test/prices.json", session=session)

    with pytest.raises(PriceFeedAPIError):
        client.fetch_entries()


def test_fetch_entries_rejects_non_list_payload() -> None:
    session = Mock()
    session.request.return_value = _mock_response({"prices": []})

    client = PriceFeedClient(url="https://feed.test/prices.json", session=session)

    with pytest.raises(PriceFeedAPIError):
        client.fetch_entries()


def test_fetch_entries_rejects_malformed_record() -> None:
    session = Mock()
    session.request.return_value = _mock_response([{"currency": "ETH", "date": "not-a-date", "price": 1}])

    client = PriceFeedClient(url="https://feed.test/prices.json", session=session)

    with pytest.raises(PriceFeedAPIError) as exc_info:
        client.fetch_entries()

    assert exc_info.value.payload == {"currency": "ETH", "date": "not-a-date", "price": 1}


def test_client_mounts_retry_adapter() -> None:
    session = Mock()

    PriceFeedClient(url="https://feed.test/prices.json", session=session, retry_attempts=2)

    mounted = [call.args[0] for call in session.mount.call_args_list]
    assert mounted == ["https://", "http://"]
