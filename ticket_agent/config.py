from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from ticket_agent.errors import ConfigError
from ticket_agent.utils.io import read_text

PACKAGE_DIR = Path(__file__).resolve().parent
ENV_PREFIX = "TICKETS_"


@dataclass
class Settings:
    mode: str = "mock"
    provider: str = "openai"
    # None lets the provider adapter pick its own default model.
    model: Optional[str] = None
    data_dir: Path = Path("data") / "projects"
    max_file_mb: float = 5.0
    features_per_batch: int = 3
    temperature: float = 0.2
    max_output_tokens: int = 4096
    validate_on_clarify: bool = True
    pricing_file: Path = PACKAGE_DIR / "pricing.yaml"
    log_level: str = "INFO"


def _coerce(name: str, raw: object, default: object) -> object:
    if default is None:
        return str(raw)
    if isinstance(default, bool):
        if isinstance(raw, bool):
            return raw
        return str(raw).strip().lower() in {"1", "true", "yes", "on"}
    if isinstance(default, Path):
        return Path(str(raw)).expanduser()
    try:
        return type(default)(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid value for {name}: {raw!r}") from exc


def _load_file(path: Path) -> Dict:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        loaded = yaml.safe_load(read_text(path)) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file {path} is not valid YAML: {exc}") from exc
    if not isinstance(loaded, dict):
        raise ConfigError(f"Config file {path} must contain a mapping.")
    return loaded


def load_settings(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    **overrides: object,
) -> Settings:
    """Defaults, then the YAML file, then TICKETS_* variables, then explicit overrides."""
    env = os.environ if environ is None else environ
    if config_path is None and env.get(f"{ENV_PREFIX}CONFIG"):
        config_path = Path(env[f"{ENV_PREFIX}CONFIG"])
    from_file = _load_file(Path(config_path)) if config_path else {}

    settings = Settings()
    values: Dict[str, object] = {}
    for item in fields(Settings):
        default = getattr(settings, item.name)
        raw: object = from_file.get(item.name)
        env_value = env.get(f"{ENV_PREFIX}{item.name.upper()}")
        if env_value not in (None, ""):
            raw = env_value
        if overrides.get(item.name) is not None:
            raw = overrides[item.name]
        values[item.name] = default if raw is None else _coerce(item.name, raw, default)

    resolved = Settings(**values)
    if resolved.mode not in {"mock", "live"}:
        raise ConfigError(f"mode must be 'mock' or 'live', got {resolved.mode!r}")
    if resolved.provider not in {"openai", "gemini"}:
        raise ConfigError(f"provider must be 'openai' or 'gemini', got {resolved.provider!r}")
    if resolved.features_per_batch < 1:
        raise ConfigError("features_per_batch must be at least 1")
    return resolved


def ensure_api_key(settings: Settings) -> None:
    if settings.mode != "live":
        return
    key = "OPENAI_API_KEY" if settings.provider == "openai" else "GEMINI_API_KEY"
    if not os.getenv(key):
        raise ConfigError(
            f"Missing required API key: {key}. Create a .env file from .env.example and set the key."
        )


def load_prompt(name: str) -> str:
    return read_text(PACKAGE_DIR / "prompts" / f"{name}.md")
