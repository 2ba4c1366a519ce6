import argparse
from typing import Any

from tagmeister.util.config.BaseConfig import BaseConfig
from tagmeister.util.config.settings_util import DEFAULT_SECRETS_PATH, DEFAULT_SETTINGS_PATH

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class BaseArgs(BaseConfig):
    settings_path: str
    secrets_path: str
    log_level: str

    def __init__(self, data: list[(str, Any, type, bool)]):
        super().__init__(data)

    @staticmethod
    def add_common_arguments(parser: argparse.ArgumentParser):
        # @formatter:off

        parser.add_argument("--settings-path", type=str, required=False, default=DEFAULT_SETTINGS_PATH, dest="settings_path", help="The json file that caption settings are loaded from and saved to")
        parser.add_argument("--secrets-path", type=str, required=False, default=DEFAULT_SECRETS_PATH, dest="secrets_path", help="The json file that holds the api key")
        parser.add_argument("--log-level", type=str.upper, required=False, default="INFO", dest="log_level", help="The logging level", choices=LOG_LEVELS)

        # @formatter:on

    @staticmethod
    def common_values() -> list[(str, Any, type, bool)]:
        data = []

        # name, default value, data type, nullable
        data.append(("settings_path", DEFAULT_SETTINGS_PATH, str, False))
        data.append(("secrets_path", DEFAULT_SECRETS_PATH, str, False))
        data.append(("log_level", "INFO", str, False))

        return data

