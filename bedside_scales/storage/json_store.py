"""
Result store backed by a single JSON file.

File layout::

    {"version": 1, "results": [<StoredResult>, ...]}

Entries are kept in insertion order. Every write replaces the file through a
temporary sibling and an atomic rename, so a failed write leaves the previous
content in place.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import List, Union

from pydantic import ValidationError

from bedside_scales.core.errors import PersistenceFailure
from bedside_scales.core.models import StoredResult
from bedside_scales.storage.base import ResultStore

logger = logging.getLogger(__name__)

FILE_FORMAT_VERSION = 1


class JsonFileResultStore(ResultStore):
    """Persists results to ``path``. The file is created on the first write."""

    def __init__(self, path: Union[str, Path], **kwargs):
        super().__init__(**kwargs)
        self.path = Path(path).expanduser()

    def __repr__(self) -> str:
        return f"JsonFileResultStore({str(self.path)!r})"

    def _open_medium(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceFailure(
                f"Cannot create results directory {self.path.parent}: {e}"
            ) from e
        if self.path.exists() and not self.path.is_file():
            raise PersistenceFailure(f"Results path {self.path} is not a file")

    def _load(self) -> List[StoredResult]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            # ValueError covers JSONDecodeError and UnicodeDecodeError.
            raise PersistenceFailure(f"Cannot read {self.path}: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("results"), list):
            raise PersistenceFailure(f"Unexpected content in {self.path}")
        if data.get("version") != FILE_FORMAT_VERSION:
            raise PersistenceFailure(
                f"Unsupported results file version {data.get('version')!r} in {self.path}"
            )

        try:
            return [StoredResult.model_validate(item) for item in data["results"]]
        except ValidationError as e:
            raise PersistenceFailure(f"Invalid result entry in {self.path}: {e}") from e

    def _dump(self, entries: List[StoredResult]) -> None:
        payload = {
            "version": FILE_FORMAT_VERSION,
            "results": [entry.model_dump(mode="json") for entry in entries],
        }
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise PersistenceFailure(f"Cannot write {self.path}: {e}") from e
        logger.debug("Wrote %d results to %s", len(entries), self.path)
