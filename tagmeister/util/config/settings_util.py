import json
import logging
import os

from tagmeister.util.config.CaptionConfig import CaptionConfig
from tagmeister.util.config.SecretsConfig import SecretsConfig
from tagmeister.util.path_util import write_json_atomic

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = "caption_settings.json"
DEFAULT_SECRETS_PATH = "secrets.json"


def _load_json(path: str) -> dict | None:
    if not os.path.isfile(path):
        return None

    try:
        with open(path, "r", encoding="utf-8") as f:
            loaded = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Could not read {path}, using defaults: {e}")
        return None

    if not isinstance(loaded, dict):
        logger.warning(f"Ignoring {path}, expected a JSON object")
        return None

    return loaded


def load_caption_config(path: str = DEFAULT_SETTINGS_PATH) -> CaptionConfig:
    config = CaptionConfig.default_values()
    loaded = _load_json(path)
    if loaded is not None:
        config.from_dict(loaded)
    return config


def save_caption_config(config: CaptionConfig, path: str = DEFAULT_SETTINGS_PATH) -> str:
    write_json_atomic(path, config.to_dict())
    return path


def load_secrets(path: str = DEFAULT_SECRETS_PATH) -> SecretsConfig:
    secrets = SecretsConfig.default_values()
    loaded = _load_json(path)
    if loaded is not None:
        secrets.from_dict(loaded)
    return secrets


def save_secrets(secrets: SecretsConfig, path: str = DEFAULT_SECRETS_PATH) -> str:
    write_json_atomic(path, secrets.to_dict())
    return path
