# simpledo/services/storage_service.py

import json
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional
from loguru import logger

from ..exceptions import StorageUnavailableError


class LocalStorageService:
    def __init__(self, file_path: str):
        """
        Key/value slots persisted as a single JSON document. Values are
        strings, like browser local storage.
        """
        self.file_path = Path(file_path)

    def _read_all(self) -> Dict[str, str]:
        if not self.file_path.exists():
            return {}
        try:
            with open(self.file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Could not read local storage at {self.file_path}: {e}")
            raise StorageUnavailableError(f"Local storage is unavailable: {e}") from e
        if not isinstance(data, dict):
            raise StorageUnavailableError(f"Local storage at {self.file_path} is not a key/value document")
        return data

    def _write_all(self, data: Dict[str, str]) -> None:
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.file_path.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2)
                os.replace(tmp_path, self.file_path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise
        except OSError as e:
            logger.error(f"Could not write local storage at {self.file_path}: {e}")
            raise StorageUnavailableError(f"Local storage is unavailable: {e}") from e

    def get_item(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)
        logger.debug(f"Stored {len(value)} characters under '{key}'")

    def remove_item(self, key: str) -> None:
        data = self._read_all()
        if data.pop(key, None) is not None:
            self._write_all(data)
