"""Bank of Israel representative rate source.

Queries the BOI currency XML endpoint for a single day. A typical answer::

    <CURRENCIES>
      <LAST_UPDATE>2024-01-05</LAST_UPDATE>
      <CURRENCY>
        <NAME>Dollar</NAME>
        <UNIT>1</UNIT>
        <CURRENCYCODE>USD</CURRENCYCODE>
        <RATE>3.652</RATE>
      </CURRENCY>
    </CURRENCIES>

Days without a published rate come back as an error document, a non-200
status, or a zero rate; all of these are reported as "unavailable" so the
converter can walk back to the previous day.
"""

import xml.etree.ElementTree as ET
from datetime import date
from decimal import Decimal, InvalidOperation

import httpx

from tracker.config import RateSettings
from tracker.exceptions import DataShapeError, TransportError
from tracker.logging import get_logger
from tracker.rates.source import RateSource

logger = get_logger(__name__)

#: Date format of the ``rdate`` query parameter.
BOI_DATE_FORMAT = "%Y%m%d"


class BankOfIsraelRateSource(RateSource):
    """Fetches the daily USD/ILS rate from the Bank of Israel.

    Args:
        client: Shared async HTTP client (owned by the caller).
        settings: Endpoint and currency code.
    """

    def __init__(self, client: httpx.AsyncClient, settings: RateSettings) -> None:
        self._client = client
        self._settings = settings

    async def fetch_rate(self, day: date) -> Decimal | None:
        params = {
            "curr": self._settings.currency_code,
            "rdate": day.strftime(BOI_DATE_FORMAT),
        }
        try:
            response = await self._client.get(self._settings.base_url, params=params)
        except httpx.HTTPError as e:
            raise TransportError(f"bank of israel request failed for {day}: {e}") from e

        if response.status_code != 200:
            logger.debug(
                "rate_status_unavailable",
                date=day.isoformat(),
                status=response.status_code,
            )
            return None

        return parse_rate(response.content, day)


def parse_rate(payload: bytes, day: date) -> Decimal | None:
    """Extract the rate from a BOI XML document.

    Returns None when the document carries no usable rate.

    Raises:
        DataShapeError: If the rate is quoted per more than one unit.
    """
    try:
        root = ET.fromstring(payload)
    except ET.ParseError:
        logger.debug("rate_payload_unparseable", date=day.isoformat())
        return None

    currency = root if root.tag == "CURRENCY" else root.find("CURRENCY")
    if currency is None:
        return None

    unit_text = (currency.findtext("UNIT") or "").strip()
    if unit_text:
        try:
            unit = int(unit_text)
        except ValueError as e:
            raise DataShapeError(f"bad unit {unit_text!r} for {day}") from e
        if unit > 1:
            raise DataShapeError(f"unexpected unit multiplier {unit} for {day}")

    rate_text = (currency.findtext("RATE") or "").strip()
    try:
        return Decimal(rate_text)
    except InvalidOperation:
        return None
