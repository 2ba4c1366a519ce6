import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from tagmeister.module.captioning.BaseVisionCaptionClient import BaseVisionCaptionClient
from tagmeister.module.captioning.caption_errors import (
    AlreadyRunningError,
    CaptionError,
    CaptionWriteError,
    EmptyTargetSetError,
    MissingCredentialError,
    TransportError,
)
from tagmeister.module.captioning.caption_normalizer import normalize_caption
from tagmeister.module.captioning.captioning_util import sort_samples
from tagmeister.module.captioning.CaptionSample import CaptionSample
from tagmeister.util.config.CaptionConfig import CaptionConfig
from tagmeister.util.config.SecretsConfig import SecretsConfig

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CaptionResult:
    sample: CaptionSample
    caption: str
    error: CaptionError | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class CaptionJobState:
    """The state of one captioning run. Targets, prepend and append text are fixed when the run starts."""

    ordered_targets: tuple[CaptionSample, ...]
    prepend_text: str = ""
    append_text: str = ""
    current_index: int = 0
    is_running: bool = True
    cancelled: bool = False
    results: list[CaptionResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.ordered_targets)

    @property
    def progress(self) -> float:
        if self.total == 0:
            return 0.0
        return self.current_index / self.total

    @property
    def completed(self) -> bool:
        return self.current_index == self.total

    @property
    def current_target(self) -> CaptionSample | None:
        if self.current_index < self.total:
            return self.ordered_targets[self.current_index]
        return None

    @property
    def failures(self) -> list[CaptionResult]:
        return [result for result in self.results if result.failed]


class BatchCaptionController:
    """
    Captions a set of images one after another on a background thread.

    Only one run can be active at a time. Every image is captioned, normalized, wrapped with the
    run's prepend and append text and written to its sidecar file before the next one is started.
    Images that fail get a placeholder caption and are reported through `error_callback`, the run
    carries on with the next image.

    All callbacks are invoked on the worker thread.

    Parameters:
        client (`BaseVisionCaptionClient`): the client used to describe images
        config (`CaptionConfig`): model, prepend/append text and prefix list, read when a run starts
        secrets (`SecretsConfig`): holds the api key, read when a run starts
        item_callback (`Callable[[int, CaptionSample], None]`): called before an image is captioned
        progress_callback (`Callable[[int, int], None]`): called with (done, total) at the start and after every image
        result_callback (`Callable[[CaptionResult], None]`): called after an image's caption was written
        error_callback (`Callable[[str], None]`): called with the image filename for every failed image
        finished_callback (`Callable[[CaptionJobState], None]`): called once the run has stopped
    """

    def __init__(
        self,
        client: BaseVisionCaptionClient,
        config: CaptionConfig,
        secrets: SecretsConfig,
        item_callback: Callable[[int, CaptionSample], None] | None = None,
        progress_callback: Callable[[int, int], None] | None = None,
        result_callback: Callable[[CaptionResult], None] | None = None,
        error_callback: Callable[[str], None] | None = None,
        finished_callback: Callable[[CaptionJobState], None] | None = None,
    ):
        self.client = client
        self.config = config
        self.secrets = secrets

        self.item_callback = item_callback
        self.progress_callback = progress_callback
        self.result_callback = result_callback
        self.error_callback = error_callback
        self.finished_callback = finished_callback

        self.state: CaptionJobState | None = None

        self._lock = threading.Lock()
        self._cancel_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        return self.state is not None and self.state.is_running

    @staticmethod
    def needs_confirmation(targets: Iterable) -> bool:
        """Runs over more than one image have to be confirmed by the user before they are started."""
        return len(set(targets)) > 1

    def current_progress(self) -> float:
        with self._lock:
            return 0.0 if self.state is None else self.state.progress

    def start_run(
        self,
        targets: Iterable[CaptionSample | str],
        prepend_text: str | None = None,
        append_text: str | None = None,
    ) -> CaptionJobState:
        """
        Starts captioning the targets in file name order and returns immediately.

        Parameters:
            targets (`Iterable[CaptionSample | str]`): the images to caption, duplicates are ignored
            prepend_text (`str`): added before every caption, defaults to the configured text
            append_text (`str`): added after every caption, defaults to the configured text

        Raises:
            AlreadyRunningError: another run has not finished yet
            EmptyTargetSetError: no targets were given
            MissingCredentialError: no api key is configured
        """
        samples = {target if isinstance(target, CaptionSample) else CaptionSample(target) for target in targets}

        with self._lock:
            if self.is_running:
                raise AlreadyRunningError()
            if not samples:
                raise EmptyTargetSetError()

            api_key = self.secrets.api_key()
            if not api_key:
                raise MissingCredentialError()

            state = CaptionJobState(
                ordered_targets=tuple(sort_samples(samples)),
                prepend_text=self.config.prepend_text if prepend_text is None else prepend_text,
                append_text=self.config.append_text if append_text is None else append_text,
            )
            model = self.config.model.model_id()
            prefixes = tuple(self.config.boilerplate_prefixes)

            self.state = state
            self._cancel_event.clear()
            self._thread = threading.Thread(
                target=self._run,
                args=(state, api_key, model, prefixes),
                name="caption-run",
                daemon=True,
            )
            self._thread.start()

        return state

    def cancel(self) -> bool:
        """Stops the active run after the image that is currently being captioned. Returns False if idle."""
        if not self.is_running:
            return False
        logger.info("Cancelling captioning run")
        self._cancel_event.set()
        return True

    def join(self, timeout: float | None = None) -> bool:
        """Waits for the active run to stop. Returns True if no run is active anymore."""
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
            return not thread.is_alive()
        return True

    def _run(self, state: CaptionJobState, api_key: str, model: str, prefixes: tuple[str, ...]) -> None:
        total = state.total
        logger.info(f"Captioning {total} images with {model}")

        try:
            if self.progress_callback:
                self.progress_callback(0, total)

            for index, sample in enumerate(state.ordered_targets):
                if self._cancel_event.is_set():
                    with self._lock:
                        state.cancelled = True
                    logger.info(f"Captioning cancelled after {index} of {total} images")
                    break

                if self.item_callback:
                    self.item_callback(index, sample)

                result = self._caption_sample(sample, state, api_key, model, prefixes)
                result = self._save_result(result)

                with self._lock:
                    state.results.append(result)
                    state.current_index = index + 1

                if result.failed and self.error_callback:
                    self.error_callback(sample.image_filename)
                if self.result_callback:
                    self.result_callback(result)
                if self.progress_callback:
                    self.progress_callback(index + 1, total)
        finally:
            with self._lock:
                state.is_running = False

            if state.completed:
                logger.info(f"Captioning finished, {len(state.failures)} of {total} images failed")

            if self.finished_callback:
                self.finished_callback(state)

    def _caption_sample(
        self,
        sample: CaptionSample,
        state: CaptionJobState,
        api_key: str,
        model: str,
        prefixes: tuple[str, ...],
    ) -> CaptionResult:
        logger.info(f"Captioning image: {sample.image_filename}")

        try:
            raw_caption = self.client.caption_sample(sample, api_key, model)
        except CaptionError as e:
            logger.error(f"Error captioning {sample.image_filename}: {e}")
            return CaptionResult(sample, e.placeholder, e)
        except Exception as e:
            logger.error(f"Error captioning {sample.image_filename}: {e}", exc_info=True)
            error = TransportError(str(e))
            return CaptionResult(sample, error.placeholder, error)

        caption = state.prepend_text + normalize_caption(raw_caption, prefixes) + state.append_text
        logger.debug(f"Raw caption: {raw_caption}")
        logger.debug(f"Caption: {caption}")
        return CaptionResult(sample, caption)

    @staticmethod
    def _save_result(result: CaptionResult) -> CaptionResult:
        try:
            result.sample.save_caption(result.caption)
        except OSError as e:
            logger.error(f"Failed to save caption for {result.sample.image_filename}: {e}")
            error = CaptionWriteError(str(e))
            return CaptionResult(result.sample, error.placeholder, error)
        return result
