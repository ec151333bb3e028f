# config.py
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

BASE_DIR = Path(__file__).resolve().parent
DEFAULT_CONFIG_PATH = BASE_DIR / "config.yaml"
TEMPLATES_DIR = BASE_DIR / "templates"

DEFAULT_RENDER_SERVICE = "http://localhost:8080/molecule/$smiles"


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class Settings:
    chem_name_lookup_service: str
    molecule_render_service: str = DEFAULT_RENDER_SERVICE
    verify_ssl: bool = False
    debug: bool = False
    # everything from the config file, handed to the landing page
    context: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))


def settings_from_mapping(raw: Mapping[str, Any]) -> Settings:
    lookup = raw.get("chem_name_lookup_service")
    if not isinstance(lookup, str) or "$name" not in lookup:
        raise ConfigError("chem_name_lookup_service must be a URL containing '$name'")

    render = raw.get("molecule_render_service", DEFAULT_RENDER_SERVICE)
    if not isinstance(render, str) or "$smiles" not in render:
        raise ConfigError("molecule_render_service must be a URL containing '$smiles'")

    return Settings(
        chem_name_lookup_service=lookup,
        molecule_render_service=render,
        verify_ssl=bool(raw.get("verify_ssl", False)),
        debug=bool(raw.get("debug", False)),
        context=MappingProxyType(dict(raw)),
    )


def load_settings(path: Path = DEFAULT_CONFIG_PATH) -> Settings:
    """Read the YAML config file. Raises ConfigError on anything unusable."""
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Config file {path} is not valid YAML: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return settings_from_mapping(raw)
