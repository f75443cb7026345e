"""Gnosis Pay HTTP client for fetching rewards info and card transactions"""

import asyncio
from decimal import InvalidOperation
from typing import Any, List

import httpx

from payments_gateway.config import settings
from payments_gateway.domain.exceptions import GnosisPayAPIError, UnauthorizedError
from payments_gateway.domain.models import RewardsInfo, Transaction
from payments_gateway.infrastructure.clients.mappers import map_rewards_info, map_transactions
from payments_gateway.infrastructure.observability.metrics import (
    gnosis_pay_failures_counter,
    gnosis_pay_latency_histogram,
)


class GnosisPayClient:
    """Client for the Gnosis Pay rewards and transactions API"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.gnosis_pay_api_base
        self.transport = transport
        self.timeout = timeout or settings.http_timeout_seconds
        self.max_retries = settings.gnosis_pay_max_retries if max_retries is None else max_retries
        self.retry_delay = settings.gnosis_pay_retry_delay_seconds if retry_delay is None else retry_delay

    async def _get(self, path: str, token: str) -> Any:
        """
        GET a Gnosis Pay endpoint with retry logic.

        Retry strategy:
        - Exponential backoff: retry_delay * 2^(attempt-1) (1s, 2s, 4s)
        - Retries on 5xx errors, timeouts and network failures
        - 401/403 are not retried and raise UnauthorizedError

        Raises:
            UnauthorizedError: Token rejected
            GnosisPayAPIError: Upstream error after retries, or body is not JSON
        """
        headers = {"Accept": "application/json", "Authorization": f"Bearer {token}"}
        attempt = 0

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            while True:
                try:
                    with gnosis_pay_latency_histogram.time():
                        response = await client.get(f"{self.base_url}{path}", headers=headers)

                    if response.status_code in (401, 403):
                        raise UnauthorizedError("Gnosis Pay rejected the session token")

                    response.raise_for_status()
                    return response.json()

                except httpx.HTTPStatusError as e:
                    gnosis_pay_failures_counter.inc()
                    if e.response.status_code < 500 or attempt >= self.max_retries:
                        raise GnosisPayAPIError(f"Gnosis Pay API error: {e.response.status_code}") from e

                except httpx.TimeoutException as e:
                    gnosis_pay_failures_counter.inc()
                    if attempt >= self.max_retries:
                        raise GnosisPayAPIError(f"Gnosis Pay API timeout after {self.timeout}s") from e

                except httpx.RequestError as e:
                    gnosis_pay_failures_counter.inc()
                    if attempt >= self.max_retries:
                        raise GnosisPayAPIError(f"Gnosis Pay API unreachable: {e}") from e

                except ValueError as e:
                    raise GnosisPayAPIError(f"Invalid JSON from Gnosis Pay: {e}") from e

                attempt += 1
                await asyncio.sleep(self.retry_delay * (2 ** (attempt - 1)))

    async def get_rewards(self, token: str) -> RewardsInfo:
        """Fetch GNO balance, OG status and base cashback rate"""
        data = await self._get(settings.gnosis_pay_rewards_path, token)
        try:
            return map_rewards_info(data)
        except (KeyError, TypeError, ValueError, InvalidOperation) as e:
            raise GnosisPayAPIError(f"Invalid rewards data from Gnosis Pay: {e}") from e

    async def get_transactions(self, token: str) -> List[Transaction]:
        """
        Fetch the full card transaction history.

        Accepts both the plain array and the paginated {"transactions": [...]} shape.
        Individual malformed records are kept with empty fields for the stats engine to skip.
        """
        data = await self._get(settings.gnosis_pay_transactions_path, token)

        if isinstance(data, dict):
            data = data.get("transactions")
        if not isinstance(data, list):
            raise GnosisPayAPIError("Invalid transaction data from Gnosis Pay: expected a list")

        return map_transactions(data, settings.default_currency)

    async def get_rewards_and_transactions(self, token: str) -> tuple[RewardsInfo, List[Transaction]]:
        """Fetch both resources concurrently"""
        rewards, transactions = await asyncio.gather(
            self.get_rewards(token),
            self.get_transactions(token),
        )
        return rewards, transactions
