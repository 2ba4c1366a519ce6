import logging

from tagmeister.module.captioning.caption_normalizer import normalize_caption
from tagmeister.module.captioning.captioning_util import get_samples, is_empty_caption, sort_samples
from tagmeister.module.captioning.CaptionSample import CaptionSample
from tagmeister.util.config.CaptionConfig import CaptionConfig

logger = logging.getLogger(__name__)

NO_CAPTION_PREVIEW = "(no caption)"


class CaptionBrowser:
    """
    The browsing state of the caption window: the images of a directory, the selection and the
    image that is currently shown. Independent of tkinter.

    Navigation walks the sorted selection when more than one image is selected, otherwise all
    images. It wraps around at both ends.
    """

    def __init__(self, config: CaptionConfig):
        self.config = config
        self.dir: str | None = None
        self.samples: list[CaptionSample] = []
        self.selected: set[CaptionSample] = set()
        self.current_sample: CaptionSample | None = None

    def load_directory(self, directory: str | None, include_subdirectories: bool = False) -> list[CaptionSample]:
        self.dir = directory
        self.samples = get_samples(directory, include_subdirectories) if directory else []
        self.selected = set()
        self.current_sample = self.samples[0] if self.samples else None

        logger.info(f"Loaded {len(self.samples)} images from {directory}")
        return self.samples

    def is_selected(self, sample: CaptionSample) -> bool:
        return sample in self.selected

    def set_selected(self, sample: CaptionSample, selected: bool):
        if selected:
            self.selected.add(sample)
        else:
            self.selected.discard(sample)

    def toggle_selection(self, sample: CaptionSample) -> bool:
        self.set_selected(sample, not self.is_selected(sample))
        return self.is_selected(sample)

    def select_all(self):
        self.selected = set(self.samples)

    def select_none(self):
        self.selected = set()

    def sorted_selection(self) -> list[CaptionSample]:
        return sort_samples(self.selected)

    def navigation_samples(self) -> list[CaptionSample]:
        if len(self.selected) > 1:
            return self.sorted_selection()
        return self.samples

    def show(self, sample: CaptionSample | None):
        self.current_sample = sample

    def next_sample(self) -> CaptionSample | None:
        return self.__step(1)

    def previous_sample(self) -> CaptionSample | None:
        return self.__step(-1)

    def __step(self, direction: int) -> CaptionSample | None:
        samples = self.navigation_samples()
        if not samples:
            return None

        if self.current_sample in samples:
            index = (samples.index(self.current_sample) + direction) % len(samples)
        else:
            # the shown image is outside the navigation list, start over at its first image
            index = 0

        self.current_sample = samples[index]
        return self.current_sample

    def position_text(self) -> str:
        samples = self.navigation_samples()
        if not samples:
            return "0 / 0"
        if self.current_sample in samples:
            return f"{samples.index(self.current_sample) + 1} / {len(samples)}"
        return f"- / {len(samples)}"

    def current_caption(self) -> str:
        if self.current_sample is None:
            return ""
        return self.current_sample.load_caption()

    @staticmethod
    def caption_preview(sample: CaptionSample, max_length: int = 60) -> str:
        caption = sample.load_caption().strip()
        if is_empty_caption(caption):
            return NO_CAPTION_PREVIEW
        if len(caption) > max_length:
            return caption[:max_length - 3].rstrip() + "..."
        return caption

    def apply_caption_edit(self, text: str) -> str | None:
        """
        Normalizes an edited caption and saves it to the current image's sidecar file.

        Returns the saved caption, or None if no image is shown or the file could not be written.
        """
        if self.current_sample is None:
            return None

        caption = normalize_caption(text, self.config.boilerplate_prefixes)
        try:
            self.current_sample.save_caption(caption)
        except OSError as e:
            logger.error(f"Failed to save caption for {self.current_sample.image_filename}: {e}")
            return None
        return caption

    def can_start_captioning(self, is_running: bool, api_key: str) -> bool:
        return bool(self.selected) and not is_running and bool(api_key)

    def run_targets(self) -> list[CaptionSample]:
        return self.sorted_selection()
