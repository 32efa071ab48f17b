"""JSON-file load/save hooks for simulation snapshots."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class JsonStateFile:
    """
    Stores one {config, orders, pool, current_day} snapshot as a JSON file.

    `load` and `save` have the signatures SimulationStore expects of its
    hooks. A missing or unreadable file loads as None.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            logger.info(f"No saved state at {self.path}")
            return None

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable state file {self.path}: {e}")
            return None

        if not isinstance(data, dict):
            logger.warning(f"Ignoring state file {self.path}: expected an object")
            return None
        return data

    def save(self, snapshot: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")

        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(snapshot, f, indent=2, allow_nan=False)
        os.replace(tmp_path, self.path)

        logger.debug(f"Saved state: {self.path}")
