import json
from collections.abc import Callable
from datetime import date
from typing import Any

import httpx

from tracker.api.models import ExtractResult, TransactionData
from tracker.processing.models import UploadedFile

TODAY = date(2025, 6, 1)

Handler = Callable[[httpx.Request], httpx.Response]


def make_uploaded_file(name: str = "trade.png", content: bytes = b"\x89PNG data") -> UploadedFile:
    return UploadedFile.from_bytes(
        name=name, content=content, mime_type="image/png", last_modified=1_700_000_000_000
    )


def make_transaction(**overrides: Any) -> TransactionData:
    values: dict[str, Any] = {
        "symbol": "AAPL",
        "trade_type": "Buy",
        "quantity": 10.0,
        "price": 150.0,
        "amount": 1500.0,
        "transaction_date": "2024-01-15",
        "broker": "Fidelity",
    }
    values.update(overrides)
    return TransactionData(**values)


def make_result(*transactions: TransactionData) -> ExtractResult:
    rows = list(transactions) or [make_transaction()]
    return ExtractResult(transaction_count=len(rows), transactions=rows)


def json_response(status_code: int, body: dict[str, Any]) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(body).encode())
