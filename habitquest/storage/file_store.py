"""
JSON file key-value store

One JSON document per key under a data directory. Writes go to a temporary
file first and are moved into place, so a reader never sees a half-written
document.
"""

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Optional

from habitquest.config import DATA_PATH
from habitquest.exceptions import wrap_external_exception
from habitquest.storage.base import KeyValueStore

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class JsonFileStore(KeyValueStore):
    """Store each key as <data_path>/<key>.json"""

    def __init__(self, data_path: Path = DATA_PATH):
        self.data_path = Path(data_path)

    def get_path(self, key: str) -> Path:
        """File holding a key (':' and other unsafe characters become '_')"""
        return self.data_path / f"{_UNSAFE_CHARS.sub('_', key)}.json"

    async def get(self, key: str) -> Optional[Any]:
        filepath = self.get_path(key)
        if not filepath.exists():
            return None

        try:
            return json.loads(filepath.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read {filepath}: {e}")
            raise wrap_external_exception(e, operation="store_get", context={"key": key})

    async def set(self, key: str, value: Any) -> None:
        filepath = self.get_path(key)
        tmp_path = filepath.with_suffix(".json.tmp")

        try:
            self.data_path.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(value, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, filepath)
        except OSError as e:
            raise wrap_external_exception(e, operation="store_set", context={"key": key})

        logger.debug(f"Wrote {filepath}")

    async def delete(self, key: str) -> None:
        try:
            self.get_path(key).unlink(missing_ok=True)
        except OSError as e:
            raise wrap_external_exception(e, operation="store_delete", context={"key": key})
