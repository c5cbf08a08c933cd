"""
Configuration loading.

Reads the YAML configuration file (listener port, phonebook, sound cues)
into a ModemConfig.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from .exceptions import ConfigError
from .types import PhonebookEntry

logger = logging.getLogger(__name__)

DEFAULT_PORT = 5000
DEFAULT_HOST = "127.0.0.1"

# Environment variable -> (config key, type)
ENV_OVERRIDES = {
    "HAYESMODEM_PORT": ("port", int),
    "HAYESMODEM_HOST": ("host", str),
}


@dataclass
class ModemConfig:
    """Emulator configuration."""
    port: int = DEFAULT_PORT
    host: str = DEFAULT_HOST
    connect_timeout: float = 10.0
    greeting: bool = True
    phonebook: List[PhonebookEntry] = field(default_factory=list)
    sound_paths: Dict[str, str] = field(default_factory=dict)
    audio_enabled: bool = True
    audio_device: Optional[Union[int, str]] = None
    base_path: str = "."

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], base_path: str = ".") -> "ModemConfig":
        """
        Build a configuration from a parsed YAML document.

        Args:
            data: Mapping with optional "config", "phonebook", "sounds" and
                  "audio" sections
            base_path: Directory relative sound paths resolve against

        Returns:
            ModemConfig

        Raises:
            ConfigError: If a section has the wrong shape or type
        """
        if not isinstance(data, Mapping):
            raise ConfigError("Configuration root must be a mapping")

        section = _section(data, "config")
        audio = _section(data, "audio")

        config = cls(
            port=_port(section.get("port", DEFAULT_PORT)),
            host=str(section.get("host", DEFAULT_HOST)),
            connect_timeout=_positive_float(section.get("connect_timeout", 10.0), "connect_timeout"),
            greeting=bool(section.get("greeting", True)),
            phonebook=_phonebook(data.get("phonebook") or []),
            sound_paths=_sounds(_section(data, "sounds")),
            audio_enabled=bool(audio.get("enabled", True)),
            audio_device=_device(audio.get("device")),
            base_path=base_path,
        )
        return config


def load_config(path: str, apply_env: bool = True) -> ModemConfig:
    """
    Load configuration from a YAML file.

    Args:
        path: Path to the YAML file
        apply_env: Apply HAYESMODEM_* environment overrides

    Returns:
        ModemConfig with base_path set to the file's directory

    Raises:
        ConfigError: If the file cannot be read or is invalid
    """
    data = _load_yaml_file(path)

    if apply_env:
        data = _apply_env_overrides(data)

    base_path = os.path.dirname(os.path.abspath(path))
    config = ModemConfig.from_dict(data, base_path=base_path)

    logger.info(f"Configuration loaded from {path}")
    logger.debug(f"Configuration: {config}")
    return config


def _load_yaml_file(path: str) -> Dict[str, Any]:
    """Load a YAML file."""
    try:
        with open(path, "r") as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Error loading {path}: {e}") from e


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    """Apply HAYESMODEM_* environment variables to the config section."""
    if not isinstance(data, dict):
        return data

    result = dict(data)
    section = dict(result.get("config") or {})

    for env_var, (key, convert) in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value is None:
            continue
        try:
            section[key] = convert(value)
        except ValueError as e:
            raise ConfigError(f"Invalid value for {env_var}: {value!r}") from e
        logger.info(f"Applied environment override: {env_var}={value}")

    result["config"] = section
    return result


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"Section '{name}' must be a mapping")
    return value


def _port(value: Any) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid port: {value!r}") from e
    if not 0 < port < 65536:
        raise ConfigError(f"Port out of range: {port}")
    return port


def _positive_float(value: Any, name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid {name}: {value!r}") from e
    if number <= 0:
        raise ConfigError(f"{name} must be positive, got {number}")
    return number


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _phonebook(entries: Any) -> List[PhonebookEntry]:
    if not isinstance(entries, list):
        raise ConfigError("Section 'phonebook' must be a list")

    phonebook = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, Mapping):
            raise ConfigError(f"Phonebook entry {index} must be a mapping")
        number = _optional_str(entry.get("number"))
        if number is None:
            raise ConfigError(f"Phonebook entry {index} has no number")
        phonebook.append(PhonebookEntry(
            number=number,
            route=_optional_str(entry.get("route_to")),
            announce=_optional_str(entry.get("play")),
        ))
    return phonebook


def _sounds(section: Mapping[str, Any]) -> Dict[str, str]:
    # Unknown keys are kept so they can be used as announce cues
    return {str(name): str(path) for name, path in section.items() if path}


def _device(value: Any) -> Optional[Union[int, str]]:
    # sounddevice accepts a device index or a substring of the device name
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ConfigError("audio.device must be a device index or name")
    return value
