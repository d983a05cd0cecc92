"""Image persistence for generated images.

Images arrive from the txt2img API as base64 strings (optionally wrapped in a
``data:image/...;base64,`` URI) and are written to the directory selected by
the storage mode.

Filenames
---------
A filename is derived from the write time and the user's prompt::

    <ISO-8601 UTC timestamp, ':' and '.' replaced by '-'>_<prompt slug>.png

The prompt slug is the first 20 characters of the prompt with every
non-alphanumeric character replaced by ``_``.  The whole name is lowercased,
so ``"A cat in space!!"`` at ``2024-01-01T00:00:00.000Z`` becomes
``2024-01-01t00-00-00-000z_a_cat_in_space__.png``.

Writes use a single exclusive-create open.  When two requests compute the
same name within one millisecond, the second finds the file present, skips
the write and returns the same reference.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from animegen.core.errors import PersistenceError

logger = logging.getLogger(__name__)

IMAGE_EXTENSION = ".png"
PROMPT_SLUG_LENGTH = 20

_DATA_URI_PREFIX = re.compile(r"^data:image/\w+;base64,")
_NON_ALPHANUMERIC = re.compile(r"[^a-zA-Z0-9]")


@dataclass(frozen=True)
class StoredImage:
    """Where a generated image ended up."""

    file_path: str
    public_url: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """Render *moment* as a filesystem-safe ISO-8601 UTC timestamp.

    Millisecond precision with a ``Z`` suffix, then ``:`` and ``.`` replaced
    by ``-``: ``2024-01-01T00-00-00-000Z``.
    """
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    iso = moment.strftime("%Y-%m-%dT%H:%M:%S") + f".{moment.microsecond // 1000:03d}Z"
    return re.sub(r"[:.]", "-", iso)


def build_filename(prompt: str, moment: datetime) -> str:
    slug = _NON_ALPHANUMERIC.sub("_", prompt[:PROMPT_SLUG_LENGTH])
    return f"{format_timestamp(moment)}_{slug}{IMAGE_EXTENSION}".lower()


def decode_image(data: str) -> bytes:
    """Strip an optional data-URI prefix and decode the base64 payload.

    Raises:
        PersistenceError: If the payload is not a base64 string.
    """
    if not isinstance(data, str):
        raise PersistenceError("Failed to save image")
    stripped = _DATA_URI_PREFIX.sub("", data, count=1)
    try:
        return base64.b64decode(stripped, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise PersistenceError("Failed to save image") from exc


class ImageStore:
    """Writes generated images to the storage-mode directory.

    Args:
        directory: Destination folder.  Created on first write.
        public_path: URL prefix under which *directory* is served.  Ignored
            when *use_custom_folder* is set.
        use_custom_folder: When ``True`` the public URL is the absolute
            file path because the folder is not served over HTTP.
        clock: Returns the current time.  Tests inject a fixed clock.
    """

    def __init__(
        self,
        directory: Path,
        *,
        public_path: str = "/generated-images",
        use_custom_folder: bool = False,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.directory = Path(directory)
        self.public_path = public_path.rstrip("/")
        self.use_custom_folder = use_custom_folder
        self._clock = clock

    def _reference(self, file_path: Path) -> StoredImage:
        if self.use_custom_folder:
            public_url = str(file_path)
        else:
            public_url = f"{self.public_path}/{file_path.name}"
        return StoredImage(file_path=str(file_path), public_url=public_url)

    def save(self, image_data: str, prompt: str, *, now: datetime | None = None) -> StoredImage:
        """Decode *image_data* and write it under a name derived from *prompt*.

        Args:
            image_data: Base64 image, with or without a data-URI prefix.
            prompt: The user's original prompt, used for the filename.
            now: Write time.  Defaults to the store's clock.

        Returns:
            :class:`StoredImage` pointing at the written (or already
            present) file.

        Raises:
            PersistenceError: If decoding or writing fails.
        """
        filename = build_filename(prompt, now or self._clock())
        file_path = self.directory / filename
        image_bytes = decode_image(image_data)

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.error(f"Cannot create image folder {self.directory}: {exc}")
            raise PersistenceError("Failed to save image") from exc

        try:
            handle = open(file_path, "xb")
        except FileExistsError:
            logger.info(f"Image already stored, skipping write: {file_path}")
            return self._reference(file_path)
        except OSError as exc:
            logger.error(f"Error saving image to {file_path}: {exc}")
            raise PersistenceError("Failed to save image") from exc

        try:
            with handle:
                handle.write(image_bytes)
        except OSError as exc:
            logger.error(f"Error saving image to {file_path}: {exc}")
            # Drop the partial file so the name is free again.
            file_path.unlink(missing_ok=True)
            raise PersistenceError("Failed to save image") from exc

        logger.info(f"Saved image to {file_path}")
        return self._reference(file_path)
