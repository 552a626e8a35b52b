from typing import Any

from tracker.api import endpoints
from tracker.api.client import ApiClient
from tracker.api.exceptions import ApiResponseError


class PortfolioService:
    """Read-only portfolio reporting endpoints. Payloads are passed through as-is."""

    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def get_summary(self) -> dict[str, Any]:
        return await self._fetch(endpoints.PORTFOLIO_SUMMARY, "Failed to fetch portfolio summary")

    async def get_holdings(self) -> dict[str, Any]:
        return await self._fetch(endpoints.PORTFOLIO_HOLDINGS, "Failed to fetch holdings")

    async def get_historical_chart(self, period: str | None = None) -> dict[str, Any]:
        params = {"period": period} if period else None
        return await self._fetch(
            endpoints.PORTFOLIO_HISTORICAL_CHART,
            "Failed to fetch historical chart",
            params=params,
        )

    async def get_holding_basic_info(self, symbol: str, analysis_type: str = "basic") -> dict[str, Any]:
        """Basic figures for one holding (cost, market value, returns)."""
        return await self._fetch(
            endpoints.holding_path(symbol),
            "Failed to fetch stock basic info",
            params={"analysis_type": analysis_type},
        )

    async def _fetch(
        self,
        url: str,
        default_message: str,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        body = await self._client.get(url, params=params)
        if not body.get("success", True):
            raise ApiResponseError(str(body.get("message") or default_message))
        data = body.get("data")
        return data if isinstance(data, dict) else {}
