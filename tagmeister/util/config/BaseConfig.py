import logging
from collections.abc import Callable
from enum import Enum
from typing import Any, get_origin

from tagmeister.util.type_util import issubclass_safe

logger = logging.getLogger(__name__)


class BaseConfig:
    config_version: int
    config_migrations: dict[int, Callable[[dict], dict]]

    def __init__(
            self,
            data: list[tuple[str, Any, type, bool]],
            config_version: int | None = None,
            config_migrations: dict[int, Callable[[dict], dict]] | None = None
    ):
        self.config_version = config_version if config_version is not None else 0
        self.config_migrations = config_migrations if config_migrations is not None else {}

        self.types = {}
        self.nullables = {}
        self.default_values = {}
        for (name, value, var_type, nullable) in data:
            setattr(self, name, value)
            self.types[name] = var_type
            self.nullables[name] = nullable
            self.default_values[name] = value

    def to_dict(self) -> dict:
        data = {
            '__version': self.config_version,
        }

        for name in self.types:
            value = getattr(self, name)
            if self.types[name] is list or get_origin(self.types[name]) is list:
                data[name] = None if value is None else list(value)
            elif issubclass_safe(self.types[name], Enum):
                data[name] = None if value is None else str(value)
            elif self.types[name] is float:
                if value in [float('inf'), float('-inf')]:
                    data[name] = str(value)
                else:
                    data[name] = value
            else:
                data[name] = value

        return data

    def from_dict(self, data: dict) -> 'BaseConfig':
        version = 0
        if '__version' in data:
            version = data['__version']

        while version in self.config_migrations:
            data = self.config_migrations[version](data)
            version += 1

        for name in self.types:
            if name not in data:
                continue

            try:
                setattr(self, name, self.__convert(name, data[name]))
            except (KeyError, TypeError, ValueError):
                logger.warning(f"Could not set {name} as {str(data[name])}")

        return self

    def __convert(self, name: str, value: Any) -> Any:
        var_type = self.types[name]

        if value is None and self.nullables[name]:
            return None

        if var_type is list or get_origin(var_type) is list:
            if not isinstance(value, list | tuple):
                raise TypeError(f"expected a list, got {type(value).__name__}")
            return list(value)
        elif var_type is str:
            return str(value)
        elif issubclass_safe(var_type, Enum):
            # enums are stored by name
            return var_type[value] if isinstance(value, str) else var_type(value)
        elif var_type is bool:
            if not isinstance(value, bool):
                raise TypeError(f"expected a bool, got {type(value).__name__}")
            return value
        elif var_type is int:
            return int(value)
        elif var_type is float:
            # strings are accepted to support "inf" loaded from json
            return float(value)

        return value
