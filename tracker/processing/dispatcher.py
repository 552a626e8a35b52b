from tracker.api.models import ExtractResponse
from tracker.api.transaction_service import TransactionService
from tracker.logging.logger import Log
from tracker.processing.models import FileStatus
from tracker.processing.store import FileProcessingStore


class ExtractionDispatcher:
    """Runs concurrent extraction for the registered session and feeds results into the store."""

    def __init__(self, service: TransactionService, store: FileProcessingStore) -> None:
        self._service = service
        self._store = store

    async def dispatch(self) -> list[ExtractResponse]:
        """Extract every file of the current session; returns once all have settled.

        Results are matched back to files by identity, so files imported and
        discarded while others are still in flight do not shift later
        results onto the wrong slot. Results for a cleared or replaced
        session are dropped by the store's generation check.
        """
        files = list(self._store.files)
        generation = self._store.generation
        for index in range(len(files)):
            self._store.update_file_status(
                index, FileStatus.PROCESSING, progress=0, generation=generation
            )
        Log.info(f"Extracting {len(files)} files", generation=generation)

        def on_progress(index: int, response: ExtractResponse, error: str | None) -> None:
            current_index = self._store.index_of(files[index])
            if current_index is None or generation != self._store.generation:
                Log.debug(f"Dropping extraction result for discarded file {files[index].name}")
                return
            if response.success:
                self._store.update_file_status(
                    current_index,
                    FileStatus.COMPLETED,
                    result=response.data,
                    generation=generation,
                )
                count = response.data.transaction_count if response.data else 0
                Log.info(f"Extracted {count} transactions", file=files[index].name)
            else:
                message = error or response.message or "Failed to extract transactions"
                self._store.update_file_status(
                    current_index,
                    FileStatus.ERROR,
                    error=message,
                    generation=generation,
                )
                Log.warning(f"Extraction failed: {message}", file=files[index].name)

        return await self._service.extract_transactions_parallel(files, on_progress)
