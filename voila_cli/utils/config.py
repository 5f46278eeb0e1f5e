"""Configuration management for the CLI."""

import json
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Optional


@dataclass
class Config:
    """CLI configuration."""

    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    chat_provider: Optional[str] = None
    default_output: str = "table"
    default_region: Optional[str] = None


SETTABLE_KEYS = tuple(f.name for f in fields(Config))


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_dir = Path.home() / ".voila"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_config_path() -> Path:
    """Get the configuration file path."""
    return get_config_dir() / "config.json"


def load_config() -> Config:
    """Load configuration from file."""
    config_path = get_config_path()

    if not config_path.exists():
        return Config()

    try:
        with open(config_path, "r") as f:
            data = json.load(f)
    except (json.JSONDecodeError, IOError):
        return Config()

    return Config(**{key: data[key] for key in SETTABLE_KEYS if key in data})


def save_config(config: Config) -> None:
    """Save configuration to file."""
    config_path = get_config_path()

    # The anon key is stored here
    config_path.touch(mode=0o600, exist_ok=True)

    with open(config_path, "w") as f:
        json.dump(asdict(config), f, indent=2)


def mask(secret: Optional[str]) -> str:
    if not secret:
        return "Not set"
    if len(secret) <= 12:
        return "****"
    return secret[:8] + "..." + secret[-4:]
