import json
from collections.abc import Callable
from pathlib import Path

import httpx
import pytest
from typer.testing import CliRunner

from tests.helpers import Handler, json_response
from tracker import main
from tracker.api.client import ApiClient
from tracker.logging.logger import Log

ClientFactory = Callable[[Handler], ApiClient]

runner = CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(Log, "configure", lambda *args, **kwargs: None)


@pytest.fixture()
def serve(monkeypatch: pytest.MonkeyPatch, make_client: ClientFactory) -> Callable[[Handler], None]:
    """Route every command's API client to ``handler``."""

    def install(handler: Handler) -> None:
        monkeypatch.setattr(main.ApiClient, "from_settings", lambda settings: make_client(handler))

    return install


class TestSearch:
    def test_prints_ranked_matches(self) -> None:
        result = runner.invoke(
            main.app, ["search", "AAP", "--option", "MSFT", "--option", "AAPM", "--option", "AAPL"]
        )
        assert result.exit_code == 0
        assert result.stdout.split() == ["AAPM", "AAPL"]


class TestHistory:
    def test_invalid_sort_is_a_usage_error(self) -> None:
        result = runner.invoke(main.app, ["history", "--sort-by", "broker"])
        assert result.exit_code == 2

    def test_prints_page(self, serve: Callable[[Handler], None]) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["symbol"] == "AAPL,MSFT"
            return json_response(
                200,
                {
                    "success": True,
                    "data": {
                        "transactions": [
                            {"id": "t1", "symbol": "AAPL", "trade_type": "Buy", "quantity": 1,
                             "price": 10, "amount": 10, "transaction_date": "2024-01-15"}
                        ],
                        "pagination": {"page": 1, "page_size": 100, "total_records": 1, "total_pages": 1},
                    },
                },
            )

        serve(handler)
        result = runner.invoke(main.app, ["history", "--symbol", "AAPL", "--symbol", "MSFT"])
        assert result.exit_code == 0
        assert "AAPL" in result.stdout
        assert "Page 1/1 (1 records)" in result.stdout


class TestDelete:
    def test_batch_delete(self, serve: Callable[[Handler], None]) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            return json_response(200, {"success": True, "data": {"deleted_ids": body["transaction_ids"]}})

        serve(handler)
        result = runner.invoke(main.app, ["delete", "t1", "t2"])
        assert result.exit_code == 0
        assert "Deleted 2 transactions" in result.stdout

    def test_api_failure_exits_with_error(self, serve: Callable[[Handler], None]) -> None:
        serve(lambda request: json_response(404, {"message": "Transaction not found"}))
        result = runner.invoke(main.app, ["delete", "missing"])
        assert result.exit_code == 1


class TestUpload:
    def test_dry_run_reports_each_file(self, serve: Callable[[Handler], None], tmp_path: Path) -> None:
        image = tmp_path / "trade.png"
        image.write_bytes(b"\x89PNG data")
        serve(
            lambda request: json_response(
                200,
                {
                    "success": True,
                    "data": {
                        "transaction_count": 1,
                        "transactions": [{"symbol": "AAPL", "quantity": 1, "price": 10}],
                    },
                },
            )
        )

        result = runner.invoke(main.app, ["upload", str(image), "--dry-run"])

        assert result.exit_code == 0
        assert "trade.png: 1 transactions" in result.stdout

    def test_imports_valid_files(self, serve: Callable[[Handler], None], tmp_path: Path) -> None:
        image = tmp_path / "trade.png"
        image.write_bytes(b"\x89PNG data")
        imported: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/extract-transactions"):
                return json_response(
                    200,
                    {
                        "success": True,
                        "data": {
                            "transaction_count": 1,
                            "transactions": [
                                {"symbol": "AAPL", "trade_type": "Buy", "quantity": 2, "price": 10,
                                 "amount": 20, "transaction_date": "2024-01-15"}
                            ],
                        },
                    },
                )
            imported.extend(json.loads(request.content)["transactions"])
            return json_response(200, {"success": True, "data": {"transactions": []}})

        serve(handler)
        result = runner.invoke(main.app, ["upload", str(image)])

        assert result.exit_code == 0
        assert [tx["symbol"] for tx in imported] == ["AAPL"]
        assert "Done: 1 transactions imported" in result.stdout

    def test_too_many_files_fails(self, tmp_path: Path) -> None:
        paths = []
        for i in range(11):
            path = tmp_path / f"{i}.png"
            path.write_bytes(b"x")
            paths.append(str(path))
        result = runner.invoke(main.app, ["upload", *paths])
        assert result.exit_code == 1
