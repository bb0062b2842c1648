"""File storage on a mounted card, backed by a directory on the host."""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILES = 5


class StorageError(Exception):
    """A storage operation failed."""


class NotMountedError(StorageError):
    """The card is not mounted."""


@dataclass(frozen=True)
class SdCardConfig:
    """Bus pins and open-file limit of the card."""

    miso_gpio: int
    mosi_gpio: int
    sclk_gpio: int
    cs_gpio: int
    max_files: int = DEFAULT_MAX_FILES


def _as_bytes(data) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


class SdCard:
    """A card whose filesystem is mounted at a directory."""

    def __init__(self, root):
        self.root = Path(root)
        self.config: SdCardConfig | None = None
        self._mounted = False

    @property
    def mounted(self) -> bool:
        """True while the card is mounted."""
        return self._mounted

    def __enter__(self) -> SdCard:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.unmount()

    def mount(self, config: SdCardConfig) -> None:
        """Mount the card; mounting twice is harmless."""
        if self._mounted:
            logger.warning("SD card already mounted")
            return
        if not self.root.is_dir():
            raise StorageError(f"failed to mount filesystem at {self.root}")
        self.config = config
        self._mounted = True
        logger.info("SD card mounted at %s", self.root)

    def unmount(self) -> None:
        """Unmount the card; unmounting an unmounted card is harmless."""
        if not self._mounted:
            logger.warning("SD card not mounted")
            return
        self._mounted = False
        logger.info("SD card unmounted")

    def _path(self, path: str) -> Path:
        if not self._mounted:
            raise NotMountedError("SD card not mounted")
        return self.root / path

    def write_file(self, path: str, data) -> None:
        """Create or replace a file with the given contents."""
        target = self._path(path)
        logger.info("Writing file %s", target)
        try:
            target.write_bytes(_as_bytes(data))
        except OSError as exc:
            raise StorageError(f"failed to write {target}: {exc}") from exc

    def append_file(self, path: str, data) -> None:
        """Append the given contents to a file, creating it if needed."""
        target = self._path(path)
        try:
            with target.open("ab") as handle:
                handle.write(_as_bytes(data))
        except OSError as exc:
            raise StorageError(f"failed to append to {target}: {exc}") from exc

    def read_file(self, path: str, max_size: int | None = None) -> bytes:
        """Read a file, at most max_size bytes of it when given."""
        target = self._path(path)
        try:
            with target.open("rb") as handle:
                return handle.read() if max_size is None else handle.read(max_size)
        except OSError as exc:
            raise StorageError(f"failed to read {target}: {exc}") from exc

    def delete_file(self, path: str) -> None:
        """Remove a file."""
        target = self._path(path)
        try:
            target.unlink()
        except OSError as exc:
            raise StorageError(f"failed to delete {target}: {exc}") from exc
        logger.info("File deleted: %s", target)

    def create_dir(self, path: str) -> None:
        """Create a directory and any missing parents."""
        target = self._path(path)
        try:
            os.makedirs(target, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"failed to create directory {target}: {exc}") from exc
        logger.info("Directory path created: %s", path)

    def get_free_space(self) -> tuple[int, int]:
        """Return (free_bytes, total_bytes) of the card."""
        if not self._mounted:
            raise NotMountedError("SD card not mounted")
        try:
            usage = shutil.disk_usage(self.root)
        except OSError as exc:
            raise StorageError(f"failed to get free space: {exc}") from exc
        return usage.free, usage.total

    def save_jpeg(self, data, filename: str) -> None:
        """Store an encoded JPEG image."""
        target = self._path(filename)
        payload = _as_bytes(data)
        logger.info("Saving JPEG to %s", target)
        try:
            target.write_bytes(payload)
        except OSError as exc:
            raise StorageError(f"failed to write JPEG data to {target}: {exc}") from exc
        logger.info("JPEG saved: %d bytes", len(payload))