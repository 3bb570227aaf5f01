"""Priority ERP currency-rate import over the OData REST API.

Each new report row is posted to the currency's LOADCURRENCY_SUBFORM.
Priority answers 201 on success; rejections carry a human readable
reason under FORM.InterfaceErrors.text.
"""

from datetime import date
from decimal import Decimal

import httpx

from tracker.accounting.client import ForwardingClient
from tracker.config import PriorityConfig
from tracker.exceptions import ForwardingError
from tracker.logging import get_logger
from tracker.models import Currency

logger = get_logger(__name__)


def load_currency_endpoint(endpoint: str, currency_symbol: str) -> str:
    return f"{endpoint.rstrip('/')}/CURRENCIES('{currency_symbol}')/LOADCURRENCY_SUBFORM"


def _interface_error_text(response: httpx.Response) -> str | None:
    """Best-effort extraction of Priority's error message."""
    try:
        body = response.json()
        return body["FORM"]["InterfaceErrors"]["text"]
    except (ValueError, KeyError, TypeError):
        return None


class PriorityClient(ForwardingClient):
    """Posts converted daily rates to Priority with HTTP Basic auth.

    Args:
        client: Shared async HTTP client (owned by the caller).
        config: Endpoint and credentials.
    """

    def __init__(self, client: httpx.AsyncClient, config: PriorityConfig) -> None:
        self._client = client
        self._config = config
        self._auth = httpx.BasicAuth(
            config.username, config.password.get_secret_value()
        )

    async def forward(self, currency: Currency, exchange_rate: Decimal, currency_date: date) -> None:
        logger.info(
            "priority_insert",
            currency=currency.name,
            exchange_rate=str(exchange_rate),
            date=currency_date.isoformat(),
        )
        body = {
            "EXCHANGE": float(exchange_rate),
            "CURDATE": f"{currency_date.isoformat()}T00:00:00Z",
        }
        try:
            response = await self._client.post(
                load_currency_endpoint(self._config.endpoint, currency.symbol),
                json=body,
                auth=self._auth,
            )
        except httpx.HTTPError as e:
            raise ForwardingError(f"priority request failed for {currency.name}: {e}") from e

        if response.status_code != 201:
            reason = _interface_error_text(response) or response.text
            raise ForwardingError(
                f"priority insert rejected for {currency.name} "
                f"({response.status_code}): {reason}"
            )

        logger.info("priority_insert_succeeded", currency=currency.name, date=currency_date.isoformat())
