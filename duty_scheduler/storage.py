"""
Durable key-value store backed by a single JSON document.

Holds the schedule mirror and the persisted session fields. Writes go
through a temp file and an atomic replace so a crash never leaves a
half-written document behind.
"""
import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class JsonFileStore:
    """Key-value store persisted as one JSON object"""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            raw = self.path.read_text(encoding="utf-8").strip()
            if not raw:
                return {}
            data = json.loads(raw)
        except (OSError, ValueError) as e:
            logger.warning(f"⚠️ Unreadable state file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(self.path)

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def delete(self, *keys: str) -> None:
        data = self._load()
        removed = [k for k in keys if k in data]
        for key in removed:
            del data[key]
        if removed:
            self._save(data)
