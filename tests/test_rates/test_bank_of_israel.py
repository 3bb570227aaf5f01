"""Tests for the Bank of Israel rate source.

HTTP is served by httpx.MockTransport; no real network calls.
"""

from datetime import date
from decimal import Decimal

import httpx
import pytest

from tracker.config import RateSettings
from tracker.exceptions import DataShapeError, TransportError
from tracker.rates.bank_of_israel import BankOfIsraelRateSource, parse_rate

RATE_XML = b"""<?xml version="1.0" encoding="utf-8" standalone="yes"?>
<CURRENCIES>
  <LAST_UPDATE>2024-01-05</LAST_UPDATE>
  <CURRENCY>
    <NAME>Dollar</NAME>
    <UNIT>1</UNIT>
    <CURRENCYCODE>USD</CURRENCYCODE>
    <COUNTRY>USA</COUNTRY>
    <RATE>3.652</RATE>
    <CHANGE>0.11</CHANGE>
  </CURRENCY>
</CURRENCIES>"""

ERROR_XML = b"""<?xml version="1.0" encoding="utf-8"?>
<CURRENCIES><ERROR1>Requested date is invalid or no exchange rate</ERROR1></CURRENCIES>"""


def _source(handler) -> BankOfIsraelRateSource:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return BankOfIsraelRateSource(client, RateSettings())


class TestParseRate:
    def test_valid_document(self) -> None:
        assert parse_rate(RATE_XML, date(2024, 1, 5)) == Decimal("3.652")

    def test_error_document_is_unavailable(self) -> None:
        assert parse_rate(ERROR_XML, date(2024, 1, 6)) is None

    def test_garbage_is_unavailable(self) -> None:
        assert parse_rate(b"<html>maintenance", date(2024, 1, 6)) is None

    def test_zero_rate_passed_through(self) -> None:
        payload = b"<CURRENCIES><CURRENCY><UNIT>1</UNIT><RATE>0</RATE></CURRENCY></CURRENCIES>"
        assert parse_rate(payload, date(2024, 1, 6)) == Decimal("0")

    def test_unit_above_one_is_a_shape_error(self) -> None:
        payload = b"<CURRENCIES><CURRENCY><UNIT>100</UNIT><RATE>2.5</RATE></CURRENCY></CURRENCIES>"
        with pytest.raises(DataShapeError, match="unit multiplier 100"):
            parse_rate(payload, date(2024, 1, 5))


class TestBankOfIsraelRateSource:
    @pytest.mark.asyncio
    async def test_query_parameters(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=RATE_XML)

        rate = await _source(handler).fetch_rate(date(2024, 1, 5))

        assert rate == Decimal("3.652")
        assert seen[0].url.params["curr"] == "01"
        assert seen[0].url.params["rdate"] == "20240105"
        assert seen[0].url.host == "www.boi.org.il"

    @pytest.mark.asyncio
    async def test_non_200_is_unavailable(self) -> None:
        source = _source(lambda request: httpx.Response(404))
        assert await source.fetch_rate(date(2024, 1, 6)) is None

    @pytest.mark.asyncio
    async def test_network_failure_raises_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransportError):
            await _source(handler).fetch_rate(date(2024, 1, 5))
