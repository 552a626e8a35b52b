from dataclasses import dataclass, field
from typing import Any


def _to_float(raw: Any) -> float:
    if raw is None or raw == "":
        return 0.0
    try:
        return float(raw)
    except (TypeError, ValueError):
        return float("nan")


@dataclass
class TransactionData:
    """One transaction row as exchanged with the API."""

    symbol: str = ""
    trade_type: str = "Buy"
    quantity: float = 0.0
    price: float = 0.0
    amount: float = 0.0
    transaction_date: str = ""
    broker: str = ""
    currency: str = "USD"
    user_notes: str = ""
    exchange: str = ""
    id: str | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "TransactionData":
        """Build from an API payload. Accepts ``type`` as an alias of ``trade_type``."""
        transaction_id = raw.get("id") or raw.get("transaction_id")
        return cls(
            symbol=str(raw.get("symbol") or ""),
            trade_type=str(raw.get("trade_type") or raw.get("type") or "Buy"),
            quantity=_to_float(raw.get("quantity")),
            price=_to_float(raw.get("price")),
            amount=_to_float(raw.get("amount")),
            transaction_date=str(raw.get("transaction_date") or ""),
            broker=str(raw.get("broker") or ""),
            currency=str(raw.get("currency") or "USD"),
            user_notes=str(raw.get("user_notes") or ""),
            exchange=str(raw.get("exchange") or ""),
            id=str(transaction_id) if transaction_id else None,
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "symbol": self.symbol,
            "trade_type": self.trade_type,
            "quantity": self.quantity,
            "price": self.price,
            "amount": self.amount,
            "currency": self.currency,
            "broker": self.broker,
            "transaction_date": self.transaction_date,
            "user_notes": self.user_notes,
            "exchange": self.exchange,
        }
        if self.id is not None:
            payload["id"] = self.id
        return payload


@dataclass
class ExtractResult:
    """Structured output of the extraction service for one file."""

    transaction_count: int = 0
    transactions: list[TransactionData] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "ExtractResult":
        rows = raw.get("transactions") or []
        transactions = [TransactionData.from_dict(row) for row in rows if isinstance(row, dict)]
        count = raw.get("transaction_count")
        return cls(
            transaction_count=count if isinstance(count, int) else len(transactions),
            transactions=transactions,
        )


@dataclass
class ExtractResponse:
    """Envelope returned for one extraction call. Failures carry a message, not an exception."""

    success: bool
    message: str = ""
    data: ExtractResult | None = None


@dataclass(frozen=True)
class Pagination:
    page: int = 0
    page_size: int = 0
    total_records: int = 0
    total_pages: int = 0
    has_previous: bool = False
    has_next: bool = False


@dataclass
class TransactionHistoryPage:
    """One page of ``GET /transaction-history``."""

    transactions: list[TransactionData] = field(default_factory=list)
    pagination: Pagination = field(default_factory=Pagination)
    filters_applied: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "TransactionHistoryPage":
        rows = raw.get("transactions") or []
        pagination_raw = raw.get("pagination") or {}
        filters_raw = raw.get("filters_applied") or {}
        return cls(
            transactions=[TransactionData.from_dict(r) for r in rows if isinstance(r, dict)],
            pagination=Pagination(
                page=int(pagination_raw.get("page", 0)),
                page_size=int(pagination_raw.get("page_size", 0)),
                total_records=int(pagination_raw.get("total_records", 0)),
                total_pages=int(pagination_raw.get("total_pages", 0)),
                has_previous=bool(pagination_raw.get("has_previous", False)),
                has_next=bool(pagination_raw.get("has_next", False)),
            ),
            filters_applied={
                key: list(values) for key, values in filters_raw.items() if values
            },
        )
