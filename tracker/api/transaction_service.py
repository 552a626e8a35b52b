import asyncio
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, ClassVar

from tracker.api import endpoints
from tracker.api.client import ApiClient
from tracker.api.exceptions import ApiError, ApiResponseError
from tracker.api.models import (
    ExtractResponse,
    ExtractResult,
    TransactionData,
    TransactionHistoryPage,
)
from tracker.logging.logger import Log
from tracker.processing.models import UploadedFile

ProgressCallback = Callable[[int, ExtractResponse, str | None], None]

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass
class HistoryQuery:
    """Query parameters accepted by ``GET /transaction-history``."""

    SORT_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {"transaction_date", "symbol", "price", "quantity", "amount"}
    )

    page: int = 1
    page_size: int = 100
    symbol: list[str] = field(default_factory=list)
    type: list[str] = field(default_factory=list)
    broker: list[str] = field(default_factory=list)
    exchange: list[str] = field(default_factory=list)
    currency: list[str] = field(default_factory=list)
    timeframe: str | None = None
    sort_by: str = "transaction_date"
    sort_order: str = "desc"

    def validate(self) -> None:
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if self.page_size < 1:
            raise ValueError("page_size must be >= 1")
        if self.sort_by not in self.SORT_FIELDS:
            raise ValueError(f"sort_by must be one of: {', '.join(sorted(self.SORT_FIELDS))}")
        if self.sort_order not in ("asc", "desc"):
            raise ValueError("sort_order must be 'asc' or 'desc'")
        if self.timeframe is not None:
            parts = self.timeframe.split(",")
            if len(parts) > 2 or not all(_DATE_RE.match(p) for p in parts):
                raise ValueError("timeframe must be YYYY-MM-DD or YYYY-MM-DD,YYYY-MM-DD")

    def to_params(self) -> dict[str, str]:
        self.validate()
        params = {
            "page": str(self.page),
            "page_size": str(self.page_size),
            "sort_by": self.sort_by,
            "sort_order": self.sort_order,
        }
        for name in ("symbol", "type", "broker", "exchange", "currency"):
            values = [v.strip() for v in getattr(self, name) if v.strip()]
            if values:
                params[name] = ",".join(values)
        if self.timeframe:
            params["timeframe"] = self.timeframe
        return params


class TransactionService:
    """Transaction endpoints: extraction, import, history, update and delete."""

    def __init__(self, client: ApiClient, extraction_timeout_seconds: float = 60) -> None:
        self._client = client
        self._extraction_timeout = extraction_timeout_seconds

    async def extract_transactions(self, file: UploadedFile) -> ExtractResponse:
        """Send one file for extraction.

        Never raises for remote failures: network errors, timeouts and error
        responses come back as ``ExtractResponse(success=False)``.
        """
        files = {"file": (file.name, file.to_bytes(), file.type)}
        try:
            body = await self._client.post(
                endpoints.EXTRACT_TRANSACTIONS,
                files=files,
                timeout=self._extraction_timeout,
            )
        except ApiError as exc:
            Log.error(f"Transaction extraction failed: {exc}", file=file.name)
            return ExtractResponse(success=False, message=str(exc) or "Failed to extract transactions")

        if not body.get("success"):
            message = str(body.get("message") or "Failed to extract transactions")
            return ExtractResponse(success=False, message=message)
        data = body.get("data")
        result = ExtractResult.from_dict(data) if isinstance(data, dict) else ExtractResult()
        return ExtractResponse(success=True, message=str(body.get("message") or ""), data=result)

    async def extract_transactions_parallel(
        self,
        files: Sequence[UploadedFile],
        on_progress: ProgressCallback | None = None,
    ) -> list[ExtractResponse]:
        """Extract every file concurrently; wait for all to settle.

        ``on_progress(index, response, error)`` fires as each file finishes,
        in completion order. One file's failure never aborts the others, and an
        exception raised by ``on_progress`` is logged without stopping the batch.
        """

        async def run_one(index: int, file: UploadedFile) -> ExtractResponse:
            error: str | None = None
            try:
                response = await self.extract_transactions(file)
            except Exception as exc:
                error = str(exc) or type(exc).__name__
                response = ExtractResponse(
                    success=False,
                    message=f"Failed to process {file.name}: {error}",
                )
            if on_progress is not None:
                try:
                    on_progress(index, response, error)
                except Exception as exc:
                    Log.error(f"Progress callback failed: {exc}", file=file.name)
            return response

        return list(await asyncio.gather(*(run_one(i, f) for i, f in enumerate(files))))

    async def import_transactions(self, transactions: Sequence[TransactionData]) -> list[TransactionData]:
        """Create transactions in one batch; returns the rows as stored by the server."""
        payload = {"transactions": [t.to_payload() for t in transactions]}
        body = await self._client.post(endpoints.TRANSACTION_HISTORY, json=payload)
        data = self._require_success(body, "Failed to import transactions")
        rows = data.get("transactions") if isinstance(data, dict) else None
        imported = [TransactionData.from_dict(r) for r in rows or [] if isinstance(r, dict)]
        Log.debug(f"Import request accepted {len(imported) or len(transactions)} transactions")
        return imported

    async def get_transaction_history(self, query: HistoryQuery | None = None) -> TransactionHistoryPage:
        params = (query or HistoryQuery()).to_params()
        body = await self._client.get(endpoints.TRANSACTION_HISTORY, params=params)
        data = self._require_success(body, "Failed to fetch transaction history")
        return TransactionHistoryPage.from_dict(data if isinstance(data, dict) else {})

    async def update_transaction(self, transaction_id: str, transaction: TransactionData) -> TransactionData:
        """Replace a stored transaction in full."""
        body = await self._client.put(
            endpoints.transaction_path(transaction_id),
            json=transaction.to_payload(),
        )
        data = self._require_success(body, "Failed to update transaction")
        return TransactionData.from_dict(data) if isinstance(data, dict) else transaction

    async def delete_transaction(self, transaction_id: str) -> list[str]:
        body = await self._client.delete(endpoints.transaction_path(transaction_id))
        data = self._require_success(body, "Failed to delete transaction")
        return self._deleted_ids(data) or [transaction_id]

    async def delete_transactions(self, transaction_ids: Sequence[str]) -> list[str]:
        """Delete several transactions in one call; returns the ids the server removed."""
        if not transaction_ids:
            return []
        body = await self._client.request(
            "DELETE",
            endpoints.TRANSACTION_HISTORY,
            json={"transaction_ids": list(transaction_ids)},
        )
        data = self._require_success(body, "Failed to delete transactions")
        return self._deleted_ids(data)

    @staticmethod
    def _require_success(body: dict[str, Any], default_message: str) -> Any:
        if body.get("success") is False:
            raise ApiResponseError(str(body.get("message") or default_message))
        return body.get("data")

    @staticmethod
    def _deleted_ids(data: Any) -> list[str]:
        if isinstance(data, dict):
            ids = data.get("deleted_ids") or data.get("transaction_ids") or []
            return [str(i) for i in ids]
        return []
