"""
JSON file storage for the refreshed PR data.

Two files live in the data directory:
- pr-data.json: the full CacheSnapshot
- last-update.json: UpdateMetadata derived from the same snapshot

Writes go to temporary files in the same directory first and are moved into
place with os.replace, so a reader only ever sees a complete old or complete
new file. Reads never raise: a missing, unreadable or invalid file is
reported as None.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from models.data_models import CacheSnapshot, UpdateMetadata

logger = logging.getLogger(__name__)

SNAPSHOT_FILENAME = "pr-data.json"
METADATA_FILENAME = "last-update.json"

ModelT = TypeVar("ModelT", bound=BaseModel)


class CacheStore:
    """Persist and load the snapshot/metadata pair."""

    def __init__(self, data_dir: str):
        """
        Initialize the store.

        Args:
            data_dir: Directory holding the cache files (created on first save)
        """
        self.data_dir = Path(data_dir)
        self.snapshot_path = self.data_dir / SNAPSHOT_FILENAME
        self.metadata_path = self.data_dir / METADATA_FILENAME

    def save(self, snapshot: CacheSnapshot) -> UpdateMetadata:
        """
        Write the snapshot and its metadata.

        Both files are fully written to temporary files before either one is
        replaced, so a failure while serializing or writing leaves the
        previous pair untouched.

        Returns:
            The UpdateMetadata that was written

        Raises:
            OSError: If the files cannot be written
        """
        metadata = UpdateMetadata.from_snapshot(snapshot)
        self.data_dir.mkdir(parents=True, exist_ok=True)

        snapshot_tmp = self._write_temp(self._dump(snapshot))
        try:
            metadata_tmp = self._write_temp(self._dump(metadata))
        except BaseException:
            os.unlink(snapshot_tmp)
            raise

        os.replace(snapshot_tmp, self.snapshot_path)
        os.replace(metadata_tmp, self.metadata_path)

        logger.info(
            f"Saved snapshot to {self.snapshot_path} "
            f"({metadata.repository_count} repos, {metadata.total_prs} PRs, "
            f"{metadata.total_actionable_comments} actionable comments)"
        )
        return metadata

    def load_snapshot(self) -> Optional[CacheSnapshot]:
        """Load the cached snapshot, or None if missing or invalid."""
        return self._load(self.snapshot_path, CacheSnapshot)

    def load_metadata(self) -> Optional[UpdateMetadata]:
        """Load the last-update metadata, or None if missing or invalid."""
        return self._load(self.metadata_path, UpdateMetadata)

    @staticmethod
    def _dump(model: BaseModel) -> str:
        data = model.model_dump(mode="json", by_alias=True)
        return json.dumps(data, indent=2, ensure_ascii=False) + "\n"

    def _write_temp(self, content: str) -> str:
        fd, tmp_path = tempfile.mkstemp(
            dir=self.data_dir, prefix=".tmp-", suffix=".json"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
        except BaseException:
            os.unlink(tmp_path)
            raise
        return tmp_path

    @staticmethod
    def _load(path: Path, model: Type[ModelT]) -> Optional[ModelT]:
        if not path.exists():
            logger.debug(f"No cache file at {path}")
            return None
        try:
            with open(path, encoding="utf-8") as f:
                return model.model_validate(json.load(f))
        except (OSError, ValueError, ValidationError) as e:
            # json.JSONDecodeError is a ValueError
            logger.error(f"Error loading {path.name}: {e}")
            return None
