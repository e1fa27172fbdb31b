"""
JSON document file used by the JSON-backed stores.

Stores mutate their in-memory dict synchronously (no await between read and
write) and then hand a serialized snapshot to JsonFile.write(), which writes
it from a worker thread so the event loop is not blocked on disk IO.
Snapshots are versioned; a writer that finishes late never overwrites a newer
snapshot, and each write replaces the file atomically.
"""

import asyncio
import json
import os
import threading
from pathlib import Path
from typing import Any, Dict, Union

from ..errors import PersistenceError


class JsonFile:
    def __init__(self, path: Union[Path, str]):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._version = 0
        self._written = 0

    def read(self) -> Any:
        """Parsed file contents, or None if the file does not exist yet."""
        if not self.path.exists():
            return None
        try:
            with open(self.path) as f:
                return json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise PersistenceError(f"Cannot read {self.path}: {e}") from e

    async def write(self, data: Dict[str, Any]) -> None:
        # Serialize on the loop so the snapshot matches the state of this mutation
        text = json.dumps(data, indent=2)
        self._version += 1
        await asyncio.to_thread(self._write_snapshot, text, self._version)

    def _write_snapshot(self, text: str, version: int) -> None:
        with self._lock:
            if version < self._written:
                return
            tmp = self.path.with_name(self.path.name + ".tmp")
            try:
                with open(tmp, "w") as f:
                    f.write(text)
                os.replace(tmp, self.path)
            except OSError as e:
                raise PersistenceError(f"Cannot write {self.path}: {e}") from e
            self._written = version
