"""Field validators for reviewed and manually entered transactions.

Validators are pure on success. On failure they record a message in the
given error sink under the supplied key and return False.
"""

import math
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Protocol

from tracker.api.models import TransactionData
from tracker.processing.models import ErrorKey, TransactionDraft

DIVIDEND_TRADE_TYPES = frozenset({"dividends", "dividend"})
NUMERIC_FIELDS = frozenset({"quantity", "price", "amount"})
EDITABLE_FIELDS = frozenset(
    {
        "symbol",
        "trade_type",
        "quantity",
        "price",
        "amount",
        "transaction_date",
        "broker",
        "currency",
        "user_notes",
        "exchange",
    }
)

INVALID_DATE_MESSAGE = "Please enter a valid date."
FUTURE_DATE_MESSAGE = "Transaction date cannot be in the future."
ZERO_QUANTITY_MESSAGE = "Quantity cannot be zero."
NON_POSITIVE_PRICE_MESSAGE = "Price must be greater than 0."
INVALID_NUMBER_MESSAGE = "Please enter a valid number."


class ErrorSink(Protocol):
    def set_validation_error(self, key: ErrorKey, message: str) -> None: ...

    def clear_validation_error(self, key: ErrorKey) -> None: ...


def is_dividend(trade_type: str) -> bool:
    return trade_type.strip().lower() in DIVIDEND_TRADE_TYPES


def parse_transaction_date(value: date | datetime | str) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def years_before(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        # Feb 29 in a non-leap target year
        return day.replace(year=day.year - years, day=28)


def _as_number(value: Any) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    try:
        return float(str(value).strip())
    except ValueError:
        return math.nan


def validate_transaction_date(
    value: date | datetime | str,
    key: ErrorKey,
    errors: ErrorSink,
    *,
    today: date | None = None,
    max_age_years: int = 30,
) -> bool:
    """Accept dates within ``[today - max_age_years, today]`` inclusive."""
    today = today or date.today()
    parsed = parse_transaction_date(value)
    if parsed is None:
        errors.set_validation_error(key, INVALID_DATE_MESSAGE)
        return False
    if parsed > today:
        errors.set_validation_error(key, FUTURE_DATE_MESSAGE)
        return False
    if parsed < years_before(today, max_age_years):
        errors.set_validation_error(
            key, f"Transaction date must be within the last {max_age_years} years."
        )
        return False
    return True


def validate_finite_number(value: Any, key: ErrorKey, errors: ErrorSink) -> bool:
    if not math.isfinite(_as_number(value)):
        errors.set_validation_error(key, INVALID_NUMBER_MESSAGE)
        return False
    return True


def validate_transaction_quantity(trade_type: str, value: Any, key: ErrorKey, errors: ErrorSink) -> bool:
    """Reject zero or non-numeric quantities. Negative quantities are accepted.

    Dividend rows only need a finite number.
    """
    if is_dividend(trade_type):
        return validate_finite_number(value, key, errors)
    number = _as_number(value)
    if not math.isfinite(number) or number == 0:
        errors.set_validation_error(key, ZERO_QUANTITY_MESSAGE)
        return False
    return True


def validate_transaction_price(trade_type: str, value: Any, key: ErrorKey, errors: ErrorSink) -> bool:
    if is_dividend(trade_type):
        return validate_finite_number(value, key, errors)
    number = _as_number(value)
    if not math.isfinite(number) or number <= 0:
        errors.set_validation_error(key, NON_POSITIVE_PRICE_MESSAGE)
        return False
    return True


def compute_amount(quantity: float, price: float) -> float:
    return abs(quantity * price)


def validate_draft(
    draft: TransactionDraft,
    file_index: int,
    errors: ErrorSink,
    *,
    today: date | None = None,
    max_age_years: int = 30,
) -> bool:
    """Run every field validator on one row; all of them run even after a failure."""
    tx = draft.transaction
    results = [
        validate_transaction_date(
            tx.transaction_date,
            ErrorKey(file_index, draft.row_id, "transaction_date"),
            errors,
            today=today,
            max_age_years=max_age_years,
        ),
        validate_transaction_quantity(
            tx.trade_type, tx.quantity, ErrorKey(file_index, draft.row_id, "quantity"), errors
        ),
        validate_transaction_price(
            tx.trade_type, tx.price, ErrorKey(file_index, draft.row_id, "price"), errors
        ),
        validate_finite_number(tx.amount, ErrorKey(file_index, draft.row_id, "amount"), errors),
    ]
    return all(results)


def validate_drafts(
    drafts: list[TransactionDraft],
    file_index: int,
    errors: ErrorSink,
    *,
    today: date | None = None,
    max_age_years: int = 30,
) -> bool:
    results = [
        validate_draft(d, file_index, errors, today=today, max_age_years=max_age_years)
        for d in drafts
    ]
    return all(results)


def apply_field_edit(
    errors: ErrorSink,
    file_index: int,
    draft: TransactionDraft,
    field: str,
    value: Any,
    *,
    today: date | None = None,
    max_age_years: int = 30,
) -> TransactionDraft:
    """Apply one cell edit: clear the field's error, set the value, re-validate.

    Editing quantity or price recomputes ``amount`` as ``|quantity * price|``
    unless the row is a dividend, whose amount is entered directly.
    """
    if field not in EDITABLE_FIELDS:
        raise ValueError(f"Unknown transaction field '{field}'")
    key = ErrorKey(file_index, draft.row_id, field)
    errors.clear_validation_error(key)

    new_value = _as_number(value) if field in NUMERIC_FIELDS else str(value)
    tx: TransactionData = replace(draft.transaction, **{field: new_value})

    if field == "transaction_date":
        validate_transaction_date(
            tx.transaction_date, key, errors, today=today, max_age_years=max_age_years
        )
    elif field in ("quantity", "price"):
        if field == "quantity":
            validate_transaction_quantity(tx.trade_type, tx.quantity, key, errors)
        else:
            validate_transaction_price(tx.trade_type, tx.price, key, errors)
        if not is_dividend(tx.trade_type) and math.isfinite(tx.quantity) and math.isfinite(tx.price):
            tx = replace(tx, amount=compute_amount(tx.quantity, tx.price))
            errors.clear_validation_error(ErrorKey(file_index, draft.row_id, "amount"))
    elif field == "amount":
        validate_finite_number(tx.amount, key, errors)
    elif field == "trade_type":
        for dependent in ("quantity", "price"):
            errors.clear_validation_error(ErrorKey(file_index, draft.row_id, dependent))
        validate_transaction_quantity(
            tx.trade_type, tx.quantity, ErrorKey(file_index, draft.row_id, "quantity"), errors
        )
        validate_transaction_price(
            tx.trade_type, tx.price, ErrorKey(file_index, draft.row_id, "price"), errors
        )

    return draft.with_transaction(tx)
