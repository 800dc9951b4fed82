"""Persistent key/value slot storage."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

CATALOG_SLOT = "productList"


class BlobStore:
    """Stores named JSON values in a single file that survives restarts."""

    def __init__(self, store_file: Optional[str] = None) -> None:
        """
        Initialize the store.

        Args:
            store_file: Path to the store file. Defaults to ~/.veroterra_store.json
        """
        if store_file is None:
            store_file = str(Path.home() / ".veroterra_store.json")
        self.store_file = store_file
        self.slots: dict[str, Any] = self._load()

    def _load(self) -> dict[str, Any]:
        """Load slots from file if it exists."""
        if os.path.exists(self.store_file):
            try:
                with open(self.store_file, "r", encoding="utf-8") as f:
                    data = json.load(f)
                if isinstance(data, dict):
                    logger.info(f"Loaded stored state from {self.store_file}")
                    return data
                logger.warning(f"Ignoring store file with unexpected content: {self.store_file}")
            except (OSError, json.JSONDecodeError, ValueError) as e:
                # Corrupted file, start fresh
                logger.warning(f"Could not load stored state: {e}")
        return {}

    def _save(self) -> None:
        """Write all slots to file."""
        try:
            directory = os.path.dirname(self.store_file)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.store_file, "w", encoding="utf-8") as f:
                json.dump(self.slots, f, indent=2, ensure_ascii=False)
            os.chmod(self.store_file, 0o600)
        except OSError as e:
            logger.error(f"Could not save stored state: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        return self.slots.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.slots[key] = value
        self._save()
