import threading
from unittest.mock import MagicMock

from tagmeister.module.captioning.BaseVisionCaptionClient import BaseVisionCaptionClient
from tagmeister.module.captioning.BatchCaptionController import BatchCaptionController
from tagmeister.module.captioning.caption_errors import (
    AlreadyRunningError,
    CaptionWriteError,
    EmptyTargetSetError,
    ImageReadError,
    MissingCredentialError,
    ResponseParseError,
    TransportError,
)
from tagmeister.module.captioning.CaptionSample import CaptionSample
from tagmeister.util.enum.CaptionModel import CaptionModel

import pytest

from tests.helpers import FakeVisionClient, make_config, make_secrets, setup_test_directory


@pytest.fixture
def image_dir(tmp_path):
    d, _ = setup_test_directory(tmp_path, "images", [("b.png", True), ("a.png", True), ("c.jpg", True)])
    return d


def samples_in(d, *names):
    return [CaptionSample(str(d / name)) for name in names]


def run_to_end(controller, targets, **kwargs):
    state = controller.start_run(targets, **kwargs)
    assert controller.join(5)
    return state


class TestStartRun:
    def test_processes_targets_in_filename_order(self, image_dir):
        client = FakeVisionClient()
        controller = BatchCaptionController(client, make_config(), make_secrets())

        state = run_to_end(controller, samples_in(image_dir, "c.jpg", "b.png", "a.png"))

        assert [name for name, _, _ in client.calls] == ["a.png", "b.png", "c.jpg"]
        assert [s.filename for s in state.ordered_targets] == ["a.png", "b.png", "c.jpg"]

    def test_natural_filename_order(self, tmp_path):
        d, _ = setup_test_directory(tmp_path, "numbered", [("img10.png", True), ("img2.png", True), ("IMG1.png", True)])
        client = FakeVisionClient()
        controller = BatchCaptionController(client, make_config(), make_secrets())

        run_to_end(controller, samples_in(d, "img10.png", "img2.png", "IMG1.png"))

        assert [name for name, _, _ in client.calls] == ["IMG1.png", "img2.png", "img10.png"]

    def test_accepts_paths_and_ignores_duplicates(self, image_dir):
        client = FakeVisionClient()
        controller = BatchCaptionController(client, make_config(), make_secrets())

        state = run_to_end(controller, [str(image_dir / "a.png"), CaptionSample(str(image_dir / "a.png"))])

        assert state.total == 1
        assert len(client.calls) == 1

    def test_passes_credential_and_model_through(self, image_dir):
        client = FakeVisionClient()
        controller = BatchCaptionController(client, make_config(model=CaptionModel.GPT_4O), make_secrets("sk-abc"))

        run_to_end(controller, samples_in(image_dir, "a.png"))

        assert client.calls == [("a.png", "sk-abc", "gpt-4o")]

    def test_empty_targets_are_rejected(self):
        controller = BatchCaptionController(FakeVisionClient(), make_config(), make_secrets())

        with pytest.raises(EmptyTargetSetError):
            controller.start_run([])

        assert controller.state is None
        assert not controller.is_running

    def test_missing_credential_is_rejected(self, image_dir, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        client = FakeVisionClient()
        controller = BatchCaptionController(client, make_config(), make_secrets(""))

        with pytest.raises(MissingCredentialError):
            controller.start_run(samples_in(image_dir, "a.png"))

        assert controller.state is None
        assert client.calls == []

    def test_credential_from_environment(self, image_dir, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        client = FakeVisionClient()
        controller = BatchCaptionController(client, make_config(), make_secrets(""))

        run_to_end(controller, samples_in(image_dir, "a.png"))

        assert client.calls[0][1] == "sk-env"

    def test_second_run_is_rejected_while_running(self, image_dir):
        gate = threading.Event()
        client = FakeVisionClient(gate=gate)
        controller = BatchCaptionController(client, make_config(), make_secrets())

        first = controller.start_run(samples_in(image_dir, "a.png", "b.png"))
        assert client.started.wait(5)

        with pytest.raises(AlreadyRunningError):
            controller.start_run(samples_in(image_dir, "c.jpg"))

        assert controller.state is first
        assert controller.is_running

        gate.set()
        assert controller.join(5)
        assert [name for name, _, _ in client.calls] == ["a.png", "b.png"]
        assert not (image_dir / "c.txt").exists()

    def test_new_run_after_completion(self, image_dir):
        controller = BatchCaptionController(FakeVisionClient(), make_config(), make_secrets())

        first = run_to_end(controller, samples_in(image_dir, "a.png"))
        second = run_to_end(controller, samples_in(image_dir, "b.png", "c.jpg"))

        assert second is not first
        assert controller.state is second
        assert second.current_index == 2


class TestRunProgress:
    def test_progress_before_any_run(self):
        controller = BatchCaptionController(FakeVisionClient(), make_config(), make_secrets())
        assert controller.current_progress() == 0.0

    def test_progress_reaches_one_and_is_monotonic(self, image_dir):
        progress = []
        controller = BatchCaptionController(
            FakeVisionClient(), make_config(), make_secrets(),
            progress_callback=lambda value, max_value: progress.append((value, max_value)),
        )

        state = run_to_end(controller, samples_in(image_dir, "a.png", "b.png", "c.jpg"))

        assert progress == [(0, 3), (1, 3), (2, 3), (3, 3)]
        assert state.progress == 1.0
        assert state.current_index == state.total == 3
        assert not state.is_running
        assert controller.current_progress() == 1.0

    def test_callbacks(self, image_dir):
        items = []
        results = []
        finished = MagicMock()
        controller = BatchCaptionController(
            FakeVisionClient(), make_config(), make_secrets(),
            item_callback=lambda index, sample: items.append((index, sample.filename)),
            result_callback=results.append,
            finished_callback=finished,
        )

        state = run_to_end(controller, samples_in(image_dir, "b.png", "a.png"))

        assert items == [(0, "a.png"), (1, "b.png")]
        assert [r.sample.filename for r in results] == ["a.png", "b.png"]
        finished.assert_called_once_with(state)


class TestCaptionOutput:
    def test_end_to_end_single_image(self, image_dir):
        client = FakeVisionClient({"a.png": "The image shows a red car."})
        controller = BatchCaptionController(client, make_config(), make_secrets())

        state = run_to_end(controller, samples_in(image_dir, "a.png"))

        assert (image_dir / "a.txt").read_text(encoding="utf-8") == "a red car"
        assert state.progress == 1.0
        assert not controller.is_running

    def test_end_to_end_three_images(self, image_dir):
        client = FakeVisionClient(default="The image shows a red car.")
        controller = BatchCaptionController(client, make_config(), make_secrets())

        state = run_to_end(controller, samples_in(image_dir, "a.png", "b.png", "c.jpg"))

        for name in ["a.txt", "b.txt", "c.txt"]:
            assert (image_dir / name).read_text(encoding="utf-8") == "a red car"
        assert state.completed
        assert state.progress == 1.0
        assert not state.failures

    def test_prepend_and_append(self, image_dir):
        client = FakeVisionClient({"a.png": "This image depicts a cat. It sleeps."})
        controller = BatchCaptionController(client, make_config(), make_secrets())

        run_to_end(controller, samples_in(image_dir, "a.png"), prepend_text="photo of ", append_text=", 4k")

        assert (image_dir / "a.txt").read_text(encoding="utf-8") == "photo of a cat, It sleeps, 4k"

    def test_prepend_and_append_are_read_at_run_start(self, image_dir):
        gate = threading.Event()
        config = make_config(prepend_text="pre ", append_text=" post")
        client = FakeVisionClient(gate=gate)
        controller = BatchCaptionController(client, config, make_secrets())

        controller.start_run(samples_in(image_dir, "a.png"))
        assert client.started.wait(5)
        config.prepend_text = "changed "
        config.append_text = " changed"
        gate.set()
        assert controller.join(5)

        assert (image_dir / "a.txt").read_text(encoding="utf-8") == "pre a caption post"

    def test_overwrites_existing_caption(self, image_dir):
        (image_dir / "a.txt").write_text("old caption", encoding="utf-8")
        controller = BatchCaptionController(FakeVisionClient(default="new caption"), make_config(), make_secrets())

        run_to_end(controller, samples_in(image_dir, "a.png"))

        assert (image_dir / "a.txt").read_text(encoding="utf-8") == "new caption"

    def test_uses_configured_prefixes(self, image_dir):
        client = FakeVisionClient({"a.png": "Pictured: a fox."})
        controller = BatchCaptionController(client, make_config(boilerplate_prefixes=["Pictured:"]), make_secrets())

        run_to_end(controller, samples_in(image_dir, "a.png"))

        assert (image_dir / "a.txt").read_text(encoding="utf-8") == "a fox"


class TestRunFailures:
    def test_failed_item_does_not_stop_the_run(self, image_dir):
        errors = []
        client = FakeVisionClient({"b.png": TransportError("The request timed out.")})
        controller = BatchCaptionController(
            client, make_config(), make_secrets(), error_callback=errors.append,
        )

        state = run_to_end(controller, samples_in(image_dir, "a.png", "b.png", "c.jpg"), prepend_text="x ")

        assert (image_dir / "a.txt").read_text(encoding="utf-8") == "x a caption"
        assert (image_dir / "b.txt").read_text(encoding="utf-8") == "Error: The request timed out."
        assert (image_dir / "c.txt").read_text(encoding="utf-8") == "x a caption"
        assert errors == [str(image_dir / "b.png")]
        assert state.progress == 1.0
        assert [r.sample.filename for r in state.failures] == ["b.png"]
        assert isinstance(state.failures[0].error, TransportError)

    def test_parse_failure_placeholder(self, image_dir):
        client = FakeVisionClient({"a.png": ResponseParseError()})
        controller = BatchCaptionController(client, make_config(), make_secrets())

        run_to_end(controller, samples_in(image_dir, "a.png"))

        assert (image_dir / "a.txt").read_text(encoding="utf-8") == "Failed to parse response."

    def test_unexpected_exception_is_recorded(self, image_dir):
        client = FakeVisionClient({"a.png": RuntimeError("boom")})
        controller = BatchCaptionController(client, make_config(), make_secrets())

        state = run_to_end(controller, samples_in(image_dir, "a.png", "b.png"))

        assert (image_dir / "a.txt").read_text(encoding="utf-8") == "Error: boom"
        assert (image_dir / "b.txt").read_text(encoding="utf-8") == "a caption"
        assert len(state.failures) == 1

    def test_unreadable_image(self, tmp_path):
        class EchoClient(BaseVisionCaptionClient):
            def describe(self, image_bytes, api_key, model, mime_type="image/jpeg"):
                return "never used"

        controller = BatchCaptionController(EchoClient(), make_config(), make_secrets())

        state = run_to_end(controller, [str(tmp_path / "missing.png")])

        assert (tmp_path / "missing.txt").read_text(encoding="utf-8") == "Failed to load image data."
        assert isinstance(state.failures[0].error, ImageReadError)

    def test_write_failure_is_recorded(self, image_dir):
        # a directory in place of the sidecar file can't be written
        (image_dir / "a.txt").mkdir()
        controller = BatchCaptionController(FakeVisionClient(), make_config(), make_secrets())

        state = run_to_end(controller, samples_in(image_dir, "a.png", "b.png"))

        assert isinstance(state.results[0].error, CaptionWriteError)
        assert state.results[1].error is None
        assert (image_dir / "b.txt").read_text(encoding="utf-8") == "a caption"
        assert state.progress == 1.0


class TestCancel:
    def test_cancel_stops_after_current_item(self, image_dir):
        gate = threading.Event()
        finished = []
        client = FakeVisionClient(gate=gate)
        controller = BatchCaptionController(
            client, make_config(), make_secrets(), finished_callback=finished.append,
        )

        state = controller.start_run(samples_in(image_dir, "a.png", "b.png", "c.jpg"))
        assert client.started.wait(5)
        assert controller.cancel()
        gate.set()
        assert controller.join(5)

        assert state.cancelled
        assert not state.is_running
        assert state.current_index == 1
        assert state.progress == pytest.approx(1 / 3)
        assert (image_dir / "a.txt").exists()
        assert not (image_dir / "b.txt").exists()
        assert not (image_dir / "c.txt").exists()
        assert finished == [state]

    def test_cancel_when_idle(self):
        controller = BatchCaptionController(FakeVisionClient(), make_config(), make_secrets())
        assert not controller.cancel()
        assert controller.join(0)

    def test_run_after_cancel(self, image_dir):
        gate = threading.Event()
        client = FakeVisionClient(gate=gate)
        controller = BatchCaptionController(client, make_config(), make_secrets())

        controller.start_run(samples_in(image_dir, "a.png", "b.png"))
        assert client.started.wait(5)
        controller.cancel()
        gate.set()
        assert controller.join(5)

        state = run_to_end(controller, samples_in(image_dir, "c.jpg"))
        assert not state.cancelled
        assert state.progress == 1.0


class TestNeedsConfirmation:
    @pytest.mark.parametrize(
        "names, expected",
        [
            ([], False),
            (["a.png"], False),
            (["a.png", "a.png"], False),
            (["a.png", "b.png"], True),
            (["a.png", "b.png", "c.png"], True),
        ],
    )
    def test_more_than_one_target(self, names, expected):
        assert BatchCaptionController.needs_confirmation([CaptionSample(n) for n in names]) is expected
