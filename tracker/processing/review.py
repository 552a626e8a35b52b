import uuid
from dataclasses import dataclass
from datetime import date
from typing import Any

from tracker.api.exceptions import ApiError
from tracker.api.models import TransactionData
from tracker.api.transaction_service import TransactionService
from tracker.logging.logger import Log
from tracker.processing.exceptions import FileIndexError, TransactionImportError
from tracker.processing.models import ErrorKey, FileStatus, TransactionDraft, UploadedFile
from tracker.processing.store import FileProcessingStore
from tracker.processing.validation import apply_field_edit, validate_drafts


@dataclass(frozen=True)
class ImportOutcome:
    """Result of importing one file's rows.

    ``finished`` means no completed file is left to review and the caller
    should leave the upload flow for the transaction list.
    """

    imported_count: int
    next_file_index: int | None
    finished: bool


class ReviewSession:
    """Review and import of extracted rows, one completed file at a time.

    The session follows the store through subscriptions: files that complete
    in the background become reviewable without polling, and imports that
    remove a file shift the current index along with the store.
    """

    def __init__(
        self,
        store: FileProcessingStore,
        service: TransactionService,
        *,
        today: date | None = None,
        max_age_years: int = 30,
    ) -> None:
        self._store = store
        self._service = service
        self._today = today
        self._max_age_years = max_age_years
        self._current_file: UploadedFile | None = None
        self._current_index = -1
        self._generation = store.generation
        self._rows: list[TransactionDraft] = []
        self._select(store.first_completed_index())
        self._unsubscribe = store.subscribe(self._on_store_change)

    @property
    def current_file_index(self) -> int:
        """Index of the file under review, or -1 when nothing is reviewable."""
        return -1 if self._current_file is None else self._current_index

    @property
    def current_file(self) -> UploadedFile | None:
        return self._current_file

    @property
    def is_empty(self) -> bool:
        return self._current_file is None

    @property
    def rows(self) -> list[TransactionDraft]:
        return list(self._rows)

    @property
    def errors(self) -> dict[ErrorKey, str]:
        if self.is_empty:
            return {}
        return self._store.errors_for_file(self.current_file_index)

    def select_file(self, file_index: int) -> None:
        if not 0 <= file_index < len(self._store.files) or (
            self._store.file_status(file_index) is not FileStatus.COMPLETED
        ):
            raise FileIndexError(f"File {file_index} has no completed extraction to review")
        self._select(file_index)

    def edit(self, row_id: str, field: str, value: Any) -> TransactionDraft:
        position = self._position_of(row_id)
        updated = apply_field_edit(
            self._store,
            self.current_file_index,
            self._rows[position],
            field,
            value,
            today=self._today,
            max_age_years=self._max_age_years,
        )
        self._rows[position] = updated
        self._write_back()
        return updated

    def add_row(self) -> TransactionDraft:
        draft = TransactionDraft(
            row_id=str(uuid.uuid4()),
            transaction=TransactionData(
                transaction_date=(self._today or date.today()).isoformat()
            ),
        )
        self._require_file()
        self._rows.append(draft)
        self._write_back()
        return draft

    def delete_rows(self, row_ids: set[str]) -> int:
        self._require_file()
        file_index = self.current_file_index
        kept = [row for row in self._rows if row.row_id not in row_ids]
        removed = len(self._rows) - len(kept)
        for key in self._store.errors_for_file(file_index):
            if key.row_id in row_ids:
                self._store.clear_validation_error(key)
        self._rows = kept
        self._write_back()
        return removed

    async def import_current(self) -> ImportOutcome:
        """Validate and submit the current file's rows, then move to the next completed file.

        Raises:
            TransactionImportError: when there is nothing to import, a row is
                invalid, or the server rejects the batch. File statuses and
                extracted rows are left untouched in every failure case.
        """
        file_index = self._require_file()
        if not self._rows:
            raise TransactionImportError("No transactions to import")

        for key in self._store.errors_for_file(file_index):
            self._store.clear_validation_error(key)
        if not validate_drafts(
            self._rows,
            file_index,
            self._store,
            today=self._today,
            max_age_years=self._max_age_years,
        ):
            raise TransactionImportError(
                f"{len(self._store.errors_for_file(file_index))} fields need attention before import"
            )

        transactions = [row.transaction for row in self._rows]
        try:
            await self._service.import_transactions(transactions)
        except ApiError as exc:
            Log.error(f"Import failed: {exc}", file_index=file_index)
            raise TransactionImportError(f"Failed to import transactions: {exc}") from exc

        Log.info(f"Imported {len(transactions)} transactions", file_index=file_index)
        self._store.clear_current_file(file_index)
        return ImportOutcome(
            imported_count=len(transactions),
            next_file_index=None if self.is_empty else self.current_file_index,
            finished=self.is_empty,
        )

    def cancel(self) -> None:
        """Abandon the upload session."""
        self.close()
        self._store.clear_files()
        self._current_file = None
        self._rows = []

    def close(self) -> None:
        self._unsubscribe()

    def _select(self, file_index: int | None) -> None:
        self._generation = self._store.generation
        if file_index is None:
            self._current_file = None
            self._current_index = -1
            self._rows = []
            return
        self._current_file = self._store.files[file_index]
        self._current_index = file_index
        result = self._store.extract_results.get(file_index)
        transactions = result.transactions if result else []
        self._rows = [
            TransactionDraft(row_id=f"{file_index}-{row}", transaction=tx)
            for row, tx in enumerate(transactions)
        ]

    def _on_store_change(self, store: FileProcessingStore) -> None:
        if self._current_file is None or store.generation != self._generation:
            self._select(store.first_completed_index())
            return
        index = store.index_of(self._current_file)
        if index is None:
            # Current file was imported or discarded; later files shifted into its slot.
            self._select(store.find_completed_index(self._current_index))
        else:
            self._current_index = index

    def _write_back(self) -> None:
        self._store.update_extracted_transactions(
            self.current_file_index, [row.transaction for row in self._rows]
        )

    def _require_file(self) -> int:
        if self._current_file is None:
            raise FileIndexError("No completed file to review")
        return self.current_file_index

    def _position_of(self, row_id: str) -> int:
        for position, row in enumerate(self._rows):
            if row.row_id == row_id:
                return position
        raise KeyError(f"Unknown row '{row_id}'")
