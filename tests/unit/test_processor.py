import asyncio
from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest

from tests.helpers import Handler, json_response
from tracker.api.client import ApiClient
from tracker.api.transaction_service import TransactionService
from tracker.config.settings import Settings
from tracker.processing.exceptions import FileLimitExceededError, FileRegistrationError
from tracker.processing.file_loader import FileLoader
from tracker.processing.models import FileStatus, RawFile
from tracker.processing.processor import UploadProcessor, build_processor
from tracker.processing.store import FileProcessingStore

ClientFactory = Callable[[Handler], ApiClient]

_EXTRACT_OK = {
    "success": True,
    "data": {
        "transaction_count": 1,
        "transactions": [
            {"symbol": "AAPL", "trade_type": "Buy", "quantity": 1, "price": 10,
             "amount": 10, "transaction_date": "2024-01-15", "broker": "Fidelity"}
        ],
    },
}


def _extract_handler(request: httpx.Request) -> httpx.Response:
    if b'filename="bad.png"' in request.read():
        return json_response(500, {"success": False, "message": "Could not read image"})
    return json_response(200, _EXTRACT_OK)


def _processor(client: ApiClient, max_files: int = 10) -> UploadProcessor:
    return UploadProcessor(
        file_loader=FileLoader(),
        store=FileProcessingStore(max_files=max_files),
        service=TransactionService(client),
    )


class TestRegister:
    def test_registers_files_in_order(self, make_client: ClientFactory) -> None:
        processor = _processor(make_client(_extract_handler))
        files = processor.register([RawFile("a.png", b"a"), RawFile("b.png", b"b")])
        assert [f.name for f in processor.store.files] == ["a.png", "b.png"]
        assert files[0].type == "image/png"
        assert all(s.status is FileStatus.PENDING for s in processor.store.file_states)

    def test_too_many_files_reads_nothing(self) -> None:
        loader = MagicMock(spec=FileLoader)
        processor = UploadProcessor(loader, FileProcessingStore(max_files=2), MagicMock())
        with pytest.raises(FileLimitExceededError):
            processor.register([RawFile(f"{i}.png", b"x") for i in range(3)])
        loader.load_all.assert_not_called()
        assert processor.store.files == ()

    def test_unreadable_file_leaves_store_untouched(
        self, make_client: ClientFactory, tmp_path: Path
    ) -> None:
        processor = _processor(make_client(_extract_handler))
        processor.register([RawFile("kept.png", b"k")])
        with pytest.raises(FileRegistrationError):
            processor.register([RawFile("a.png", b"a"), tmp_path / "missing.png"])
        assert [f.name for f in processor.store.files] == ["kept.png"]


class TestProcess:
    def test_navigates_once_and_settles_every_file(self, make_client: ClientFactory) -> None:
        processor = _processor(make_client(_extract_handler))
        processor.register(
            [RawFile("a.png", b"a"), RawFile("bad.png", b"b"), RawFile("c.png", b"c")]
        )
        on_navigate = MagicMock()

        responses = asyncio.run(processor.process(on_navigate=on_navigate))

        on_navigate.assert_called_once()
        assert [r.success for r in responses] == [True, False, True]
        statuses = [s.status for s in processor.store.file_states]
        assert statuses == [FileStatus.COMPLETED, FileStatus.ERROR, FileStatus.COMPLETED]
        assert processor.store.file_states[1].error == "Could not read image"

    def test_failing_navigation_callback_still_settles_every_file(
        self, make_client: ClientFactory
    ) -> None:
        processor = _processor(make_client(_extract_handler))
        processor.register([RawFile("a.png", b"a"), RawFile("c.png", b"c")])

        def on_navigate() -> None:
            raise RuntimeError("view closed")

        asyncio.run(processor.process(on_navigate=on_navigate))

        statuses = [s.status for s in processor.store.file_states]
        assert statuses == [FileStatus.COMPLETED, FileStatus.COMPLETED]

    def test_navigates_when_every_file_fails(self, make_client: ClientFactory) -> None:
        processor = _processor(make_client(_extract_handler))
        processor.register([RawFile("bad.png", b"b")])
        on_navigate = MagicMock()

        asyncio.run(processor.process(on_navigate=on_navigate))

        on_navigate.assert_called_once()
        review = processor.start_review()
        assert review.is_empty

    def test_review_starts_on_first_completed(self, make_client: ClientFactory) -> None:
        processor = _processor(make_client(_extract_handler))
        processor.register([RawFile("bad.png", b"b"), RawFile("a.png", b"a")])
        asyncio.run(processor.process())
        review = processor.start_review()
        assert review.current_file_index == 1
        assert review.rows[0].transaction.symbol == "AAPL"


class TestBuildProcessor:
    def test_uses_settings(self, make_client: ClientFactory) -> None:
        settings = Settings(max_upload_files=3, extraction_timeout_seconds=5)
        processor = build_processor(settings, make_client(_extract_handler))
        assert processor.store.max_files == 3
