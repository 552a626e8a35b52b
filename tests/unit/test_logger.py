import io
import logging

from tracker.logging.logger import Log


class TestRender:
    def test_message_without_context_is_unchanged(self) -> None:
        assert Log._render("hello", {}) == "hello"

    def test_context_rendered_as_pairs(self) -> None:
        assert Log._render("done", {"file": "a.png", "count": 2}) == "done (file=a.png count=2)"


class TestConfigure:
    def test_writes_formatted_line_to_stream(self) -> None:
        logger = logging.getLogger("tracker")
        saved = list(logger.handlers)
        for handler in saved:
            logger.removeHandler(handler)
        stream = io.StringIO()
        try:
            Log.configure("info", stream=stream)
            Log.info("Registered files", count=3)
        finally:
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
            for handler in saved:
                logger.addHandler(handler)
        assert "[INFO] Registered files (count=3)" in stream.getvalue()
