import json
from pathlib import Path

from tracker.logging.logger import Log


class TokenStore:
    """Persists the bearer token and signed-in user as a small JSON file."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def get_token(self) -> str | None:
        token = self._read().get("token")
        return token if isinstance(token, str) and token else None

    def get_user(self) -> dict[str, object] | None:
        user = self._read().get("user")
        return user if isinstance(user, dict) else None

    def save(self, token: str, user: dict[str, object] | None = None) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload: dict[str, object] = {"token": token}
        if user is not None:
            payload["user"] = user
        self._path.write_text(json.dumps(payload), encoding="utf-8")

    def clear(self) -> None:
        """Remove persisted credentials. Missing file is not an error."""
        self._path.unlink(missing_ok=True)

    def _read(self) -> dict[str, object]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            Log.warning(f"Ignoring unreadable credentials file {self._path}")
            return {}
        return data if isinstance(data, dict) else {}
