import json
from pathlib import Path
from typing import Dict, Any, Optional


class StoreError(Exception):
    """Raised when the key-value store cannot be read or written."""
    pass


class MemoryStore:
    """In-process key-value store."""

    def __init__(self, items: Optional[Dict[str, Any]] = None):
        self._items: Dict[str, Any] = dict(items or {})

    def get_item(self, key: str) -> Optional[Any]:
        return self._items.get(key)

    def set_item(self, key: str, value: Any) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class JsonFileStore:
    """Key-value store persisted as a single JSON document.

    The file is re-read on every access so that several processes
    sharing one store see each other's writes.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def get_item(self, key: str) -> Optional[Any]:
        return self._load().get(key)

    def set_item(self, key: str, value: Any) -> None:
        items = self._load()
        items[key] = value
        self._save(items)

    def remove_item(self, key: str) -> None:
        items = self._load()
        if key in items:
            del items[key]
            self._save(items)

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                content = f.read().strip()
        except OSError as e:
            raise StoreError(f"Cannot read store {self.path}: {e}")
        if not content:
            return {}
        try:
            items = json.loads(content)
        except json.JSONDecodeError as e:
            raise StoreError(f"Store {self.path} is not valid JSON: {e}")
        if not isinstance(items, dict):
            raise StoreError(f"Store {self.path} must hold a JSON object")
        return items

    def _save(self, items: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as f:
                json.dump(items, f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise StoreError(f"Cannot write store {self.path}: {e}")
