from collections.abc import Callable, Sequence
from dataclasses import replace

from tracker.api.models import ExtractResult, TransactionData
from tracker.logging.logger import Log
from tracker.processing.exceptions import (
    FileIndexError,
    FileLimitExceededError,
    InvalidStatusTransitionError,
)
from tracker.processing.models import ErrorKey, FileProcessingState, FileStatus, UploadedFile

Subscriber = Callable[["FileProcessingStore"], None]


class FileProcessingStore:
    """State container for one upload session.

    Every mutation goes through a method of this class and notifies
    subscribers afterwards. ``generation`` changes whenever the session is
    re-initialized or cleared, so callbacks captured for an older session can
    be recognised and dropped.
    """

    def __init__(self, max_files: int = 10) -> None:
        self._max_files = max_files
        self._files: list[UploadedFile] = []
        self._file_states: list[FileProcessingState] = []
        self._extract_results: dict[int, ExtractResult] = {}
        self._validation_errors: dict[ErrorKey, str] = {}
        self._generation = 0
        self._subscribers: list[Subscriber] = []

    @property
    def max_files(self) -> int:
        return self._max_files

    @property
    def files(self) -> tuple[UploadedFile, ...]:
        return tuple(self._files)

    @property
    def file_states(self) -> tuple[FileProcessingState, ...]:
        return tuple(self._file_states)

    @property
    def extract_results(self) -> dict[int, ExtractResult]:
        return dict(self._extract_results)

    @property
    def validation_errors(self) -> dict[ErrorKey, str]:
        return dict(self._validation_errors)

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_processing(self) -> bool:
        return any(not state.status.is_terminal for state in self._file_states)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a change listener. Returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        for callback in list(self._subscribers):
            callback(self)

    # -- registration -------------------------------------------------------

    def initialize_files(self, files: Sequence[UploadedFile]) -> None:
        """Start a new session with one pending entry per file, in input order.

        Raises:
            FileLimitExceededError: if more than ``max_files`` are given. The
                current state is left unchanged.
        """
        if len(files) > self._max_files:
            raise FileLimitExceededError(
                f"Maximum {self._max_files} files allowed per upload, got {len(files)}"
            )
        self._files = list(files)
        self._file_states = [FileProcessingState(file=f) for f in files]
        self._extract_results = {}
        self._validation_errors = {}
        self._generation += 1
        Log.info(f"Registered {len(files)} files", generation=self._generation)
        self._notify()

    def clear_files(self) -> None:
        self._files = []
        self._file_states = []
        self._extract_results = {}
        self._validation_errors = {}
        self._generation += 1
        self._notify()

    # -- status tracking ----------------------------------------------------

    def update_file_status(
        self,
        file_index: int,
        status: FileStatus,
        result: ExtractResult | None = None,
        error: str | None = None,
        progress: int | None = None,
        generation: int | None = None,
    ) -> bool:
        """Record a status change for one file. Returns False for stale updates.

        Terminal statuses always set progress to 100; other statuses keep the
        previous progress unless one is given. Terminal to terminal is allowed
        (last write wins); the stored result follows the latest write, so only
        a completed file with a result keeps an extraction result slot.

        Raises:
            FileIndexError: if ``file_index`` is out of range.
            InvalidStatusTransitionError: if a terminal file would move back
                to pending or processing.
        """
        if generation is not None and generation != self._generation:
            Log.debug(
                "Ignoring stale status update",
                file_index=file_index,
                status=status.value,
                generation=generation,
            )
            return False
        current = self._state_at(file_index)
        if current.status.is_terminal and not status.is_terminal:
            raise InvalidStatusTransitionError(
                f"File {file_index} is {current.status.value} and cannot return to {status.value}"
            )

        if status.is_terminal:
            new_progress = 100
        else:
            new_progress = current.progress if progress is None else progress
        stored = result if status is FileStatus.COMPLETED else None
        self._file_states[file_index] = FileProcessingState(
            file=current.file,
            status=status,
            progress=new_progress,
            result=stored,
            error=error,
        )
        if stored is None:
            self._extract_results.pop(file_index, None)
        else:
            self._extract_results[file_index] = stored
        Log.debug(f"File {file_index} is now {status.value}", file=current.file.name)
        self._notify()
        return True

    def file_status(self, file_index: int) -> FileStatus:
        """Status of a file. Indexes without an entry read as completed."""
        if 0 <= file_index < len(self._file_states):
            return self._file_states[file_index].status
        return FileStatus.COMPLETED

    def index_of(self, file: UploadedFile) -> int | None:
        """Current index of a registered file, matched by identity."""
        for index, candidate in enumerate(self._files):
            if candidate is file:
                return index
        return None

    def find_completed_index(self, start: int = 0) -> int | None:
        """First index at or after ``start`` whose status is completed."""
        for index in range(max(start, 0), len(self._file_states)):
            if self._file_states[index].status is FileStatus.COMPLETED:
                return index
        return None

    def first_completed_index(self) -> int | None:
        return self.find_completed_index(0)

    # -- extracted rows -----------------------------------------------------

    def update_extracted_transactions(
        self, file_index: int, transactions: Sequence[TransactionData]
    ) -> None:
        if file_index not in self._extract_results:
            return
        result = ExtractResult(
            transaction_count=len(transactions),
            transactions=list(transactions),
        )
        self._extract_results[file_index] = result
        self._file_states[file_index] = replace(self._file_states[file_index], result=result)
        self._notify()

    def clear_current_file(self, file_index: int) -> None:
        """Drop one file's slot and shift every later file down by one index."""
        self._state_at(file_index)
        del self._files[file_index]
        del self._file_states[file_index]

        self._extract_results = {
            (index - 1 if index > file_index else index): result
            for index, result in self._extract_results.items()
            if index != file_index
        }
        self._validation_errors = {
            (key._replace(file_index=key.file_index - 1) if key.file_index > file_index else key): message
            for key, message in self._validation_errors.items()
            if key.file_index != file_index
        }
        self._notify()

    # -- validation errors --------------------------------------------------

    def set_validation_error(self, key: ErrorKey, message: str) -> None:
        self._validation_errors[key] = message
        self._notify()

    def clear_validation_error(self, key: ErrorKey) -> None:
        if self._validation_errors.pop(key, None) is not None:
            self._notify()

    def clear_all_validation_errors(self) -> None:
        self._validation_errors = {}
        self._notify()

    def errors_for_file(self, file_index: int) -> dict[ErrorKey, str]:
        return {
            key: message
            for key, message in self._validation_errors.items()
            if key.file_index == file_index
        }

    def _state_at(self, file_index: int) -> FileProcessingState:
        if not 0 <= file_index < len(self._file_states):
            raise FileIndexError(
                f"File index {file_index} out of range (have {len(self._file_states)} files)"
            )
        return self._file_states[file_index]
