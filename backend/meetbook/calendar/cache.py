from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

_SAFE_ID = re.compile(r"^[A-Za-z0-9_-]+$")


class DocumentCache:
    """On-disk cache of rendered invites, one ``<meeting_id>.ics`` per meeting."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def path_for(self, meeting_id: str) -> Path:
        if not _SAFE_ID.match(meeting_id or ""):
            raise ValueError(f"Invalid meeting id {meeting_id!r}")
        return self.directory / f"{meeting_id}.ics"

    def save(self, meeting_id: str, text: str) -> Path:
        path = self.path_for(meeting_id)
        self.directory.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".ics.tmp")
        # Keep CRLF line endings exactly as rendered
        with open(tmp_path, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        tmp_path.replace(path)
        return path

    def load(self, meeting_id: str) -> Optional[str]:
        path = self.path_for(meeting_id)
        if not path.exists():
            return None
        with open(path, encoding="utf-8", newline="") as f:
            return f.read()

    def discard(self, meeting_id: str) -> None:
        path = self.path_for(meeting_id)
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove cached invite {path}: {e}")
