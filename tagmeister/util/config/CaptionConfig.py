from typing import Any

from tagmeister.module.captioning.caption_normalizer import DEFAULT_BOILERPLATE_PREFIXES
from tagmeister.module.captioning.OpenAIVisionClient import (
    DEFAULT_API_URL,
    DEFAULT_MAX_TOKENS,
    DEFAULT_PROMPT,
    DEFAULT_REQUEST_TIMEOUT,
)
from tagmeister.util.config.BaseConfig import BaseConfig
from tagmeister.util.enum.CaptionModel import CaptionModel


class CaptionConfig(BaseConfig):
    model: CaptionModel
    prompt: str
    max_tokens: int
    api_url: str
    request_timeout: float
    prepend_text: str
    append_text: str
    boilerplate_prefixes: list[str]
    include_subdirectories: bool
    last_directory: str | None

    def __init__(self, data: list[(str, Any, type, bool)]):
        super().__init__(data)

    @staticmethod
    def default_values() -> 'CaptionConfig':
        data = []

        # name, default value, data type, nullable

        # vision api
        data.append(("model", CaptionModel.GPT_4O_MINI, CaptionModel, False))
        data.append(("prompt", DEFAULT_PROMPT, str, False))
        data.append(("max_tokens", DEFAULT_MAX_TOKENS, int, False))
        data.append(("api_url", DEFAULT_API_URL, str, False))
        data.append(("request_timeout", DEFAULT_REQUEST_TIMEOUT, float, False))

        # caption modification
        data.append(("prepend_text", "", str, False))
        data.append(("append_text", "", str, False))
        data.append(("boilerplate_prefixes", list(DEFAULT_BOILERPLATE_PREFIXES), list[str], False))

        # browsing
        data.append(("include_subdirectories", False, bool, False))
        data.append(("last_directory", None, str, True))

        return CaptionConfig(data)
