import base64
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import NamedTuple

from tracker.api.models import ExtractResult, TransactionData


class FileStatus(str, Enum):
    """Lifecycle of one uploaded file: pending -> processing -> completed | error."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (FileStatus.COMPLETED, FileStatus.ERROR)


@dataclass(frozen=True)
class RawFile:
    """An in-memory file handle, as received from an upload form or a test."""

    name: str
    content: bytes
    type: str = ""
    last_modified: int | None = None


@dataclass(frozen=True)
class UploadedFile:
    """Serializable form of an uploaded file: metadata plus a base64 data URL."""

    name: str
    size: int
    type: str
    last_modified: int
    data_url: str

    @classmethod
    def from_bytes(cls, name: str, content: bytes, mime_type: str, last_modified: int) -> "UploadedFile":
        encoded = base64.b64encode(content).decode("ascii")
        return cls(
            name=name,
            size=len(content),
            type=mime_type,
            last_modified=last_modified,
            data_url=f"data:{mime_type};base64,{encoded}",
        )

    def to_bytes(self) -> bytes:
        _, _, payload = self.data_url.partition(",")
        return base64.b64decode(payload)


@dataclass(frozen=True)
class FileProcessingState:
    """Status of one registered file. Terminal statuses always carry progress 100."""

    file: UploadedFile
    status: FileStatus = FileStatus.PENDING
    progress: int = 0
    result: ExtractResult | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        if not 0 <= self.progress <= 100:
            raise ValueError(f"progress must be within 0..100, got {self.progress}")
        if self.status.is_terminal and self.progress != 100:
            raise ValueError(f"{self.status.value} file must have progress 100")


class ErrorKey(NamedTuple):
    """Composite key of the validation error map."""

    file_index: int
    row_id: str
    field: str

    def __str__(self) -> str:
        return f"file-{self.file_index}-{self.row_id}-{self.field}"


@dataclass
class TransactionDraft:
    """An editable row: extracted (``"<file>-<row>"`` id) or manual (UUID id)."""

    row_id: str
    transaction: TransactionData = field(default_factory=TransactionData)

    def with_transaction(self, transaction: TransactionData) -> "TransactionDraft":
        return replace(self, transaction=transaction)
