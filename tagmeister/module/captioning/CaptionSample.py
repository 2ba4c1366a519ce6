from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from tagmeister.module.captioning.caption_errors import ImageReadError
from tagmeister.util import path_util

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CaptionSample:
    """An image that can be captioned. The caption lives in a sidecar text file next to it."""

    image_filename: str

    @property
    def caption_filename(self) -> str:
        return path_util.caption_filename(self.image_filename)

    @property
    def filename(self) -> str:
        return os.path.basename(self.image_filename)

    @property
    def mime_type(self) -> str:
        return path_util.image_mime_type(self.image_filename)

    def read_image_bytes(self) -> bytes:
        try:
            with open(self.image_filename, "rb") as f:
                return f.read()
        except OSError as e:
            logger.warning(f"Could not read image {self.image_filename}: {e}")
            raise ImageReadError() from e

    def has_caption(self) -> bool:
        return os.path.isfile(self.caption_filename)

    def load_caption(self) -> str:
        """Returns the sidecar content, or an empty string if there is none."""
        if not self.has_caption():
            return ""

        try:
            with open(self.caption_filename, "r", encoding="utf-8") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to load caption for {self.filename}: {e}")
            return ""

    def save_caption(self, caption: str) -> None:
        """Writes the caption as UTF-8, replacing any existing sidecar content."""
        with open(self.caption_filename, "w", encoding="utf-8") as f:
            f.write(caption)
