from collections.abc import Callable, Sequence

from tracker.api.client import ApiClient
from tracker.api.models import ExtractResponse
from tracker.api.transaction_service import TransactionService
from tracker.config.settings import Settings
from tracker.logging.logger import Log
from tracker.processing.completion import NavigationGuard
from tracker.processing.dispatcher import ExtractionDispatcher
from tracker.processing.exceptions import FileLimitExceededError
from tracker.processing.file_loader import FileLoader, FileSource
from tracker.processing.models import UploadedFile
from tracker.processing.review import ReviewSession
from tracker.processing.store import FileProcessingStore


class UploadProcessor:
    """Orchestrates the upload flow.

    Pipeline: register -> extract (concurrently) -> review -> import.
    """

    def __init__(
        self,
        file_loader: FileLoader,
        store: FileProcessingStore,
        service: TransactionService,
        max_transaction_age_years: int = 30,
    ) -> None:
        self._file_loader = file_loader
        self._store = store
        self._service = service
        self._dispatcher = ExtractionDispatcher(service, store)
        self._max_age_years = max_transaction_age_years

    @property
    def store(self) -> FileProcessingStore:
        return self._store

    def register(self, sources: Sequence[FileSource]) -> list[UploadedFile]:
        """Read and register a new upload. Nothing is stored unless every file reads.

        Raises:
            FileLimitExceededError: more files than one upload allows.
            FileRegistrationError: a file could not be read.
        """
        if len(sources) > self._store.max_files:
            Log.warning(f"Rejected upload of {len(sources)} files (max {self._store.max_files})")
            raise FileLimitExceededError(
                f"Maximum {self._store.max_files} files allowed per upload"
            )
        files = self._file_loader.load_all(sources)
        self._store.initialize_files(files)
        return files

    async def process(self, on_navigate: Callable[[], None] | None = None) -> list[ExtractResponse]:
        """Extract all registered files.

        ``on_navigate`` fires once, as soon as the first file completes or
        every file has finished, even while other files are still in flight.
        """
        guard = NavigationGuard(on_navigate or (lambda: None))
        unsubscribe = self._store.subscribe(lambda store: guard.check(store.file_states))
        try:
            return await self._dispatcher.dispatch()
        finally:
            unsubscribe()

    def start_review(self) -> ReviewSession:
        return ReviewSession(
            self._store,
            self._service,
            max_age_years=self._max_age_years,
        )


def build_processor(settings: Settings, client: ApiClient) -> UploadProcessor:
    """Build an UploadProcessor with all required collaborators."""
    service = TransactionService(client, settings.extraction_timeout_seconds)
    return UploadProcessor(
        file_loader=FileLoader(),
        store=FileProcessingStore(max_files=settings.max_upload_files),
        service=service,
        max_transaction_age_years=settings.max_transaction_age_years,
    )
