from collections.abc import Callable, Sequence

from tracker.logging.logger import Log
from tracker.processing.models import FileProcessingState, FileStatus


def any_completed(states: Sequence[FileProcessingState]) -> bool:
    return any(state.status is FileStatus.COMPLETED for state in states)


def all_terminal(states: Sequence[FileProcessingState]) -> bool:
    """True when every file finished. An empty session never counts as finished."""
    return bool(states) and all(state.status.is_terminal for state in states)


def should_navigate(states: Sequence[FileProcessingState]) -> bool:
    return any_completed(states) or all_terminal(states)


class NavigationGuard:
    """Fires ``on_navigate`` once, the first time a checked session is ready for review."""

    def __init__(self, on_navigate: Callable[[], None]) -> None:
        self._on_navigate = on_navigate
        self._navigated = False

    @property
    def navigated(self) -> bool:
        return self._navigated

    def check(self, states: Sequence[FileProcessingState]) -> bool:
        """Returns True only on the call that triggered navigation."""
        if self._navigated or not should_navigate(states):
            return False
        self._navigated = True
        Log.info("Moving to review", completed=sum(s.status is FileStatus.COMPLETED for s in states))
        self._on_navigate()
        return True

    def reset(self) -> None:
        self._navigated = False
