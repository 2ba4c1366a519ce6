import os
from typing import Any

from tagmeister.util.config.BaseConfig import BaseConfig

OPENAI_API_KEY_ENV = "OPENAI_API_KEY"


class SecretsConfig(BaseConfig):
    openai_api_key: str

    def __init__(self, data: list[(str, Any, type, bool)]):
        super().__init__(data)

    def api_key(self) -> str:
        """The stored key, or the OPENAI_API_KEY environment variable when nothing is stored."""
        if self.openai_api_key:
            return self.openai_api_key
        return os.environ.get(OPENAI_API_KEY_ENV, "")

    @staticmethod
    def default_values() -> 'SecretsConfig':
        data = []

        # name, default value, data type, nullable
        data.append(("openai_api_key", "", str, False))

        return SecretsConfig(data)
