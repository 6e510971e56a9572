"""Change Tracker.

Persists, per build flavor, a mapping from source path to its last observed
modification time and computes which sources changed since the previous build
of that flavor.

Design:
    - Timestamps are whole-second UTC mtimes rendered as "%d:%m:%Y %H:%M:%S"
      and compared as strings; two edits inside the same second look equal
    - A path missing from the record is always changed
    - The record is rewritten after every call, changed or not
    - An unreadable record is treated as absent (full rebuild)
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%d:%m:%Y %H:%M:%S"


@dataclass
class ChangeRecord:
    """Source path -> rendered modification time."""

    files: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"files": dict(sorted(self.files.items()))}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChangeRecord":
        files = data.get("files", {})
        if not isinstance(files, dict):
            raise ValueError("'files' must be a mapping")
        return cls(files={str(k): str(v) for k, v in files.items()})

    def save(self, path: Path) -> None:
        """Save the record to a JSON file.

        Args:
            path: Path to the change record
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: Path) -> "ChangeRecord":
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("change record must be a JSON object")
        return cls.from_dict(data)


def format_mtime(path: Path) -> str:
    """Render a file's modification time for the change record.

    Raises:
        OSError: If the file's metadata cannot be read
    """
    seconds = int(path.stat().st_mtime)
    return datetime.fromtimestamp(seconds, tz=timezone.utc).strftime(TIMESTAMP_FORMAT)


class ChangeTracker:
    """Computes the changed subset of a build's sources."""

    def __init__(self, project_dir: Path):
        self.project_dir = Path(project_dir)

    def changed_files(self, record_path: Path, sources: List[str]) -> List[str]:
        """Return the sources that are new or modified since the last build.

        Args:
            record_path: Change record of the flavor being built
            sources: Candidate source paths (project-relative)

        Returns:
            Changed sources, in candidate order

        Raises:
            OSError: If any source's metadata cannot be read (nothing is persisted)
        """
        # Stat everything first so a failure leaves the record untouched.
        current = {source: format_mtime(self.project_dir / source) for source in sources}

        record = self._load(record_path)
        changed = []
        for source in sources:
            if record.files.get(source) != current[source]:
                record.files[source] = current[source]
                changed.append(source)

        record.save(record_path)
        logger.info(f"Modified files ({record_path.parent.name}): {changed}")
        return changed

    def _load(self, record_path: Path) -> ChangeRecord:
        if not record_path.exists():
            logger.info(f"There is no change record, creating: {record_path}")
            return ChangeRecord()

        try:
            return ChangeRecord.load(record_path)
        except (ValueError, json.JSONDecodeError) as e:
            logger.warning(f"Change record {record_path} is unreadable, rebuilding everything: {e}")
            return ChangeRecord()
