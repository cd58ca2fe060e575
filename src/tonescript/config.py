"""Configuration management for tonescript."""

import copy
import json
import logging
import math
import os
from dataclasses import asdict, dataclass

from .paths import config_dir, config_file, ensure_dir

log = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    "audio": {
        "sample_rate": 44100,
        "bit": 16,  # output encoding is s16le; nothing else is supported
        "volume": 0.5,
        "max_octave": 10,
        "enforce_nyquist": True,
    },
}

# Environment variables override the config file
ENV_OVERRIDES = {
    "sample_rate": ("TONESCRIPT_SAMPLE_RATE", int),
    "volume": ("TONESCRIPT_VOLUME", float),
    "max_octave": ("TONESCRIPT_MAX_OCTAVE", int),
}


class ConfigError(ValueError):
    """Raised for configuration values the renderer cannot honour."""


@dataclass(frozen=True)
class AudioConfig:
    """Fixed audio-format constants shared by the parser and synthesizer."""

    sample_rate: int = 44100
    bit: int = 16
    volume: float = 0.5
    max_octave: int = 10
    enforce_nyquist: bool = True

    def __post_init__(self):
        if isinstance(self.sample_rate, bool) or not isinstance(self.sample_rate, int) or self.sample_rate <= 0:
            raise ConfigError(f"sample_rate must be a positive integer, got {self.sample_rate!r}")
        if self.bit != 16:
            raise ConfigError(f"Only 16-bit output is supported, got bit={self.bit!r}")
        if not isinstance(self.volume, (int, float)) or not math.isfinite(self.volume) or self.volume < 0:
            raise ConfigError(f"volume must be a non-negative number, got {self.volume!r}")
        if isinstance(self.max_octave, bool) or not isinstance(self.max_octave, int):
            raise ConfigError(f"max_octave must be an integer, got {self.max_octave!r}")

    @property
    def amp(self) -> float:
        """Peak sample amplitude."""
        return (2 ** (self.bit - 1) - 1) * self.volume

    @property
    def maxf(self) -> float:
        """Nyquist limit in Hz."""
        return self.sample_rate / 2

    def to_dict(self) -> dict:
        return asdict(self)


def get_config() -> dict:
    """Load configuration from the config file, merged with defaults."""
    merged = copy.deepcopy(DEFAULT_CONFIG)
    cfg_file = config_file()

    if not cfg_file.exists():
        return merged

    try:
        with open(cfg_file) as f:
            config = json.load(f)
    except (json.JSONDecodeError, IOError):
        log.warning("Could not read %s; using defaults", cfg_file)
        return merged

    if not isinstance(config, dict):
        log.warning("Ignoring %s: top level is not an object", cfg_file)
        return merged

    # Merge with defaults for any missing keys
    for key, value in config.items():
        if isinstance(value, dict) and key in merged:
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def save_config(config: dict) -> None:
    """Save configuration to file."""
    ensure_dir(config_dir())
    with open(config_file(), "w") as f:
        json.dump(config, f, indent=2)


def get_audio_settings() -> dict:
    """Get audio settings (environment variables override the config file)."""
    settings = dict(get_config().get("audio", {}))

    for key, (var, cast) in ENV_OVERRIDES.items():
        raw = os.environ.get(var)
        if not raw:
            continue
        try:
            settings[key] = cast(raw)
        except ValueError:
            raise ConfigError(f"{var} must be a {cast.__name__}, got {raw!r}") from None

    return settings


def load_audio_config(**overrides) -> AudioConfig:
    """Build the AudioConfig from defaults, config file, environment and *overrides*.

    Overrides whose value is None are ignored, so argparse namespaces can be
    passed through directly.
    """
    settings = get_audio_settings()
    settings.update({k: v for k, v in overrides.items() if v is not None})

    known = AudioConfig.__dataclass_fields__
    unknown = sorted(set(settings) - set(known))
    if unknown:
        log.debug("Ignoring unknown audio settings: %s", ", ".join(unknown))

    return AudioConfig(**{k: v for k, v in settings.items() if k in known})
