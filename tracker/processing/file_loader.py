import mimetypes
import time
from collections.abc import Iterable
from pathlib import Path

from tracker.logging.logger import Log
from tracker.processing.exceptions import FileRegistrationError
from tracker.processing.models import RawFile, UploadedFile

FileSource = Path | str | RawFile

_DEFAULT_MIME_TYPE = "application/octet-stream"


def guess_mime_type(name: str) -> str:
    mime_type, _ = mimetypes.guess_type(name)
    return mime_type or _DEFAULT_MIME_TYPE


class FileLoader:
    """Reads file handles and encodes them into serializable UploadedFile values."""

    def load(self, source: FileSource) -> UploadedFile:
        """Read one file.

        Raises:
            FileRegistrationError: if the file cannot be read.
        """
        if isinstance(source, RawFile):
            return UploadedFile.from_bytes(
                name=source.name,
                content=source.content,
                mime_type=source.type or guess_mime_type(source.name),
                last_modified=(
                    source.last_modified
                    if source.last_modified is not None
                    else int(time.time() * 1000)
                ),
            )
        path = Path(source)
        try:
            content = path.read_bytes()
            last_modified = int(path.stat().st_mtime * 1000)
        except OSError as exc:
            raise FileRegistrationError(f"Failed to read file: {path.name}") from exc
        return UploadedFile.from_bytes(
            name=path.name,
            content=content,
            mime_type=guess_mime_type(path.name),
            last_modified=last_modified,
        )

    def load_all(self, sources: Iterable[FileSource]) -> list[UploadedFile]:
        """Read every file in order. Any failure rejects the whole batch."""
        files = [self.load(source) for source in sources]
        Log.info(f"Loaded {len(files)} files for upload")
        return files
