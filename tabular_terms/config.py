"""Reader configuration: defaults, JSON config files and environment overrides."""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional

from tabular_terms.errors import TabularError
from tabular_terms.parsing import parse_boolean

DEFAULT_FILE_EXTENSION = ""
DEFAULT_DELIMITER = ","
SUPPORTED_CONFIG_SUFFIXES = {".json"}

ENV_PREFIX = "TABULAR_TERMS_"
ENV_KEYS = {
    "file_extension": f"{ENV_PREFIX}EXTENSION",
    "delimiter": f"{ENV_PREFIX}DELIMITER",
    "trim_header": f"{ENV_PREFIX}TRIM_HEADER",
    "trim_values": f"{ENV_PREFIX}TRIM_VALUES",
    "encoding": f"{ENV_PREFIX}ENCODING",
}
BOOLEAN_KEYS = {"trim_header", "trim_values"}


class ConfigError(TabularError):
    pass


def normalize_extension(file_extension: Optional[str]) -> str:
    if not file_extension:
        return DEFAULT_FILE_EXTENSION
    if not file_extension.startswith("."):
        return "." + file_extension
    return file_extension


def normalize_delimiter(delimiter: Optional[str]) -> str:
    return delimiter or DEFAULT_DELIMITER


@dataclass(frozen=True)
class ReaderConfig:
    """Options for reading directories of delimited text files."""

    file_extension: str = DEFAULT_FILE_EXTENSION
    delimiter: str = DEFAULT_DELIMITER
    trim_header: bool = True
    trim_values: bool = False
    encoding: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "file_extension", normalize_extension(self.file_extension))
        object.__setattr__(self, "delimiter", normalize_delimiter(self.delimiter))

    def merged(self, **overrides: Any) -> "ReaderConfig":
        """Return a copy with every non-``None`` override applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "ReaderConfig":
        known = {item.name for item in fields(cls)}
        unknown = sorted(set(payload) - known)
        if unknown:
            raise ConfigError(f"Unknown config keys: {unknown}")
        return cls(**dict(payload))

    @classmethod
    def from_file(cls, path: "str | Path") -> "ReaderConfig":
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Config not found: {path}")
        if path.suffix.lower() not in SUPPORTED_CONFIG_SUFFIXES:
            raise ConfigError("Config must be a .json file")
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise ConfigError(f"Could not read config: {exc}") from exc
        if not isinstance(payload, dict):
            raise ConfigError("Config root must be a JSON object.")
        return cls.from_mapping(payload)

    def with_env(self, environ: Optional[Mapping[str, str]] = None) -> "ReaderConfig":
        """Overlay ``TABULAR_TERMS_*`` environment variables onto this config."""
        environ = os.environ if environ is None else environ
        overrides: dict[str, Any] = {}
        for key, env_name in ENV_KEYS.items():
            raw = environ.get(env_name)
            if raw is None:
                continue
            if key in BOOLEAN_KEYS:
                value = parse_boolean(raw)
                if value is None:
                    raise ConfigError(f"{env_name} must be a boolean, got {raw!r}")
                overrides[key] = value
            else:
                overrides[key] = raw
        return self.merged(**overrides)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ReaderConfig":
        return cls().with_env(environ)


STARTER_CONFIG = {
    "file_extension": ".csv",
    "delimiter": DEFAULT_DELIMITER,
    "trim_header": True,
    "trim_values": False,
    "encoding": None,
}
