"""Small JSON-file key-value store used to remember the last validated input."""

import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional, Union

from potability.models import WaterQualityInput

logger = logging.getLogger(__name__)

LAST_INPUT_KEY = "last_prediction"


class KeyValueStore:
    """String values persisted in a single JSON document on disk."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except ValueError as e:
            logger.warning("Ignoring unreadable store %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, str]):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f)
        os.replace(tmp, self.path)

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str):
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str):
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)


class LastInputCache:
    """Persists the most recent validated WaterQualityInput."""

    def __init__(self, store: KeyValueStore, key: str = LAST_INPUT_KEY):
        self.store = store
        self.key = key

    def load(self) -> Optional[WaterQualityInput]:
        """Read the cached input; unreadable or stale entries yield None."""
        try:
            raw = self.store.get(self.key)
            if raw is None:
                return None
            return WaterQualityInput.from_wire(json.loads(raw))
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Error loading last prediction: %s", e)
            return None

    def save(self, data: WaterQualityInput):
        self.store.set(self.key, json.dumps(data.to_wire()))
