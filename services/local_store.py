import json
from pathlib import Path
from typing import Optional
from loguru import logger
from config.settings import settings


class JsonStore:
    """A small JSON document on disk.

    Read failures fall back to the default value with a warning.
    """

    def __init__(self, path: Path, default=None):
        self.path = Path(path)
        self.default = default if default is not None else {}

    def load(self):
        if not self.path.exists():
            return self._fresh()
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Error reading {self.path}: {e}")
            return self._fresh()

    def save(self, value) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(value, indent=2), encoding="utf-8")

    def _fresh(self):
        return json.loads(json.dumps(self.default))


class TokenStore:
    def __init__(self, path: Optional[Path] = None):
        self._store = JsonStore(path or settings.token_path())

    def load(self) -> Optional[str]:
        data = self._store.load()
        token = data.get("token") if isinstance(data, dict) else None
        return token or None

    def save(self, token: str) -> None:
        self._store.save({"token": token})
        logger.info("Token saved.")

    def clear(self) -> None:
        if self._store.path.exists():
            self._store.path.unlink()
            logger.info("Token cleared.")


class NotesStore:
    """Free-text notes keyed by ``"<host>-<name>"``."""

    def __init__(self, path: Optional[Path] = None):
        self._store = JsonStore(path or settings.notes_path())

    def all(self) -> dict[str, str]:
        data = self._store.load()
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> str:
        return self.all().get(key, "")

    def add(self, key: str, note: str) -> None:
        notes = self.all()
        notes[key] = note
        self._store.save(notes)

    def remove(self, key: str) -> None:
        notes = self.all()
        if notes.pop(key, None) is not None:
            self._store.save(notes)
