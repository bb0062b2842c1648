"""Index of recorded videos, persisted as JSON on the storage card."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass

from fieldaudio.storage import StorageError

logger = logging.getLogger(__name__)

MANIFEST_FILE = "timelapse_data/manifest.json"
INITIAL_CAPACITY = 16
MAX_MANIFEST_SIZE = 32768
FILENAME_LIMIT = 63
FULL_PATH_LIMIT = 127
SECONDS_PER_DAY = 24 * 60 * 60


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class VideoEntry:
    """One recorded video."""

    filename: str
    full_path: str
    timestamp: int
    file_size: int
    duration_ms: int

    def to_json(self) -> dict:
        return {
            "filename": self.filename,
            "path": self.full_path,
            "timestamp": self.timestamp,
            "size": self.file_size,
            "duration_ms": self.duration_ms,
        }


class Manifest:
    """List of recorded videos kept in step with a file on the card."""

    def __init__(self, storage):
        self.storage = storage
        self._entries: list[VideoEntry] = []
        self._capacity = INITIAL_CAPACITY
        try:
            self.load()
        except (StorageError, ValueError):
            logger.info("No existing manifest found, starting fresh")

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))

    @property
    def entries(self) -> list[VideoEntry]:
        """The entries in the order they were added."""
        return list(self._entries)

    def add_video(
        self,
        relative_path: str,
        filename: str,
        file_size: int,
        duration_ms: int,
        timestamp: int | None = None,
    ) -> VideoEntry:
        """Append a video and return its entry."""
        if relative_path is None or filename is None:
            raise ValueError("relative_path and filename are required")
        while len(self._entries) >= self._capacity:
            self._capacity *= 2
        entry = VideoEntry(
            filename=filename[:FILENAME_LIMIT],
            full_path=f"{relative_path}/{filename}"[:FULL_PATH_LIMIT],
            timestamp=int(time.time()) if timestamp is None else int(timestamp),
            file_size=file_size,
            duration_ms=duration_ms,
        )
        self._entries.append(entry)
        logger.info(
            "Added video to manifest: %s (size: %d bytes, duration: %d ms)",
            entry.full_path,
            file_size,
            duration_ms,
        )
        return entry

    def save(self) -> None:
        """Write the manifest to the card."""
        document = {
            "videos": [entry.to_json() for entry in self._entries],
            "total_count": len(self._entries),
            "created_timestamp": int(time.time()),
        }
        self.storage.write_file(MANIFEST_FILE, json.dumps(document, indent="\t"))
        logger.info("Manifest saved with %d video entries", len(self._entries))

    def load(self) -> None:
        """Replace the entries with those stored on the card.

        Malformed entries are skipped; at most the current capacity is kept.
        """
        raw = self.storage.read_file(MANIFEST_FILE, MAX_MANIFEST_SIZE)
        try:
            root = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ValueError(f"failed to parse manifest JSON: {exc}") from exc
        videos = root.get("videos") if isinstance(root, dict) else None
        if not isinstance(videos, list):
            raise ValueError("manifest has no list of videos")

        entries = []
        for item in videos:
            if len(entries) >= self._capacity:
                break
            if not isinstance(item, dict):
                continue
            filename = item.get("filename")
            path = item.get("path")
            numbers = (item.get("timestamp"), item.get("size"), item.get("duration_ms"))
            if not (isinstance(filename, str) and isinstance(path, str)):
                continue
            if not all(_is_number(value) for value in numbers):
                continue
            timestamp, size, duration = numbers
            entries.append(
                VideoEntry(
                    filename=filename[:FILENAME_LIMIT],
                    full_path=path[:FULL_PATH_LIMIT],
                    timestamp=int(timestamp),
                    file_size=int(size),
                    duration_ms=int(duration),
                )
            )
        self._entries = entries
        logger.info("Loaded %d video entries from manifest", len(entries))

    def get(self, index: int) -> VideoEntry:
        """Return the entry at a position, counting from zero."""
        if not 0 <= index < len(self._entries):
            raise IndexError(f"no manifest entry at index {index}")
        return self._entries[index]

    def cleanup_old_entries(self, max_days: int, now: int | None = None) -> int:
        """Drop entries older than max_days; return how many were removed."""
        current = int(time.time()) if now is None else int(now)
        cutoff = current - max_days * SECONDS_PER_DAY
        kept = []
        for entry in self._entries:
            if entry.timestamp >= cutoff:
                kept.append(entry)
            else:
                logger.info("Removing old entry: %s", entry.full_path)
        removed = len(self._entries) - len(kept)
        self._entries = kept
        logger.info("Cleaned up manifest, %d entries remaining", len(kept))
        return removed