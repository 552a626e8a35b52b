import uuid
from datetime import date
from typing import Any

from tracker.api.exceptions import ApiError
from tracker.api.models import TransactionData
from tracker.api.transaction_service import TransactionService
from tracker.logging.logger import Log
from tracker.processing.exceptions import TransactionImportError
from tracker.processing.models import ErrorKey, TransactionDraft
from tracker.processing.validation import apply_field_edit, validate_drafts

MANUAL_FILE_INDEX = -1


class TransactionBatch:
    """Manually entered transactions held locally until a single submit."""

    def __init__(self, *, today: date | None = None, max_age_years: int = 30) -> None:
        self._today = today
        self._max_age_years = max_age_years
        self._drafts: list[TransactionDraft] = []
        self._errors: dict[ErrorKey, str] = {}

    @property
    def drafts(self) -> list[TransactionDraft]:
        return list(self._drafts)

    @property
    def errors(self) -> dict[ErrorKey, str]:
        return dict(self._errors)

    def __len__(self) -> int:
        return len(self._drafts)

    def set_validation_error(self, key: ErrorKey, message: str) -> None:
        self._errors[key] = message

    def clear_validation_error(self, key: ErrorKey) -> None:
        self._errors.pop(key, None)

    def add(self, transaction: TransactionData | None = None) -> TransactionDraft:
        if transaction is None:
            transaction = TransactionData(
                transaction_date=(self._today or date.today()).isoformat()
            )
        draft = TransactionDraft(row_id=str(uuid.uuid4()), transaction=transaction)
        self._drafts.append(draft)
        return draft

    def update(self, row_id: str, field: str, value: Any) -> TransactionDraft:
        for position, draft in enumerate(self._drafts):
            if draft.row_id == row_id:
                updated = apply_field_edit(
                    self,
                    MANUAL_FILE_INDEX,
                    draft,
                    field,
                    value,
                    today=self._today,
                    max_age_years=self._max_age_years,
                )
                self._drafts[position] = updated
                return updated
        raise KeyError(f"Unknown row '{row_id}'")

    def remove(self, row_id: str) -> None:
        self._drafts = [d for d in self._drafts if d.row_id != row_id]
        self._errors = {k: v for k, v in self._errors.items() if k.row_id != row_id}

    def clear(self) -> None:
        self._drafts = []
        self._errors = {}

    async def submit(self, service: TransactionService) -> int:
        """Validate and submit every draft in one request. The batch is kept on failure.

        Raises:
            TransactionImportError: on validation failure or a rejected request.
        """
        if not self._drafts:
            raise TransactionImportError("Batch is empty")
        self._errors = {}
        if not validate_drafts(
            self._drafts,
            MANUAL_FILE_INDEX,
            self,
            today=self._today,
            max_age_years=self._max_age_years,
        ):
            raise TransactionImportError(f"{len(self._errors)} fields need attention before submit")
        try:
            await service.import_transactions([d.transaction for d in self._drafts])
        except ApiError as exc:
            Log.error(f"Batch submit failed: {exc}")
            raise TransactionImportError(f"Failed to submit batch: {exc}") from exc
        count = len(self._drafts)
        Log.info(f"Submitted batch of {count} transactions")
        self.clear()
        return count
