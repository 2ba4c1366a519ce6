import threading
from pathlib import Path

from tagmeister.module.captioning.BaseVisionCaptionClient import BaseVisionCaptionClient
from tagmeister.util.config.CaptionConfig import CaptionConfig
from tagmeister.util.config.SecretsConfig import SecretsConfig

from PIL import Image


def create_dummy_image(
    path: Path,
    width: int = 10,
    height: int = 10,
    mode: str = "RGB",
    format: str = "PNG",
):
    """Creates a dummy image file at the specified path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    img = Image.new(mode, (width, height), color="blue")
    img.save(path, format=format)
    return path


def create_dummy_text_file(path: Path, content: str = "caption"):
    """Creates a dummy text file with the given content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding='utf-8')
    return path


def setup_test_directory(tmp_path, dirname, file_specs):
    """Create a test directory with specified files."""
    d = tmp_path / dirname
    d.mkdir()
    created_files = []

    for spec in file_specs:
        filename, is_image = spec[0], spec[1]
        kwargs = spec[2] if len(spec) > 2 else {}

        if is_image:
            created_files.append(create_dummy_image(d / filename, **kwargs))
        else:
            content = kwargs.get('content', "caption")
            created_files.append(create_dummy_text_file(d / filename, content))

    return d, created_files


def make_config(**values) -> CaptionConfig:
    config = CaptionConfig.default_values()
    for name, value in values.items():
        setattr(config, name, value)
    return config


def make_secrets(api_key: str = "sk-test") -> SecretsConfig:
    secrets = SecretsConfig.default_values()
    secrets.openai_api_key = api_key
    return secrets


class FakeVisionClient(BaseVisionCaptionClient):
    """
    Answers with canned captions keyed by image file name. Values that are exceptions are raised.

    When `gate` is set, every call waits for it, so tests can hold a run in progress.
    """

    def __init__(self, captions: dict | None = None, default: str = "a caption", gate: threading.Event | None = None):
        self.captions = captions or {}
        self.default = default
        self.gate = gate
        self.calls = []
        self.started = threading.Event()

    def describe(self, image_bytes: bytes, api_key: str, model: str, mime_type: str = "image/jpeg") -> str:
        raise NotImplementedError

    def caption_sample(self, sample, api_key: str, model: str) -> str:
        self.calls.append((sample.filename, api_key, model))
        self.started.set()
        if self.gate is not None:
            self.gate.wait(5)

        answer = self.captions.get(sample.filename, self.default)
        if isinstance(answer, Exception):
            raise answer
        return answer
