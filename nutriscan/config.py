"""
Runtime settings.

Read from environment variables (optionally from a .env file loaded with
python-dotenv). Example .env:

    NUTRISCAN_INFERENCE_PROVIDER=gemini
    NUTRISCAN_API_KEY=...
    NUTRISCAN_MULTI_SAMPLE=true
    NUTRISCAN_REFERENCE_OBJECT=coin
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from nutriscan.domain.estimation.models import AnalysisConfig, ReferenceObject
from nutriscan.domain.shared.errors import ConfigurationError

PROVIDER_OPENAI = "openai"
PROVIDER_GEMINI = "gemini"

DEFAULT_MODELS = {
    PROVIDER_OPENAI: "gpt-4o-mini",
    PROVIDER_GEMINI: "gemini-2.5-flash",
}

# Provider-specific key names accepted when NUTRISCAN_API_KEY is not set
PROVIDER_KEY_VARS = {
    PROVIDER_OPENAI: "OPENAI_API_KEY",
    PROVIDER_GEMINI: "GEMINI_API_KEY",
}

HISTORY_BACKENDS = ("file", "memory")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off", "")


def _bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got '{raw}'")


def _int(env: Mapping[str, str], name: str, default: int, minimum: int = 0) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got '{raw}'") from exc
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")
    return value


def _float(env: Mapping[str, str], name: str, default: float, minimum: float, maximum: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got '{raw}'") from exc
    if not minimum <= value <= maximum:
        raise ConfigurationError(f"{name} must be within [{minimum}, {maximum}], got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    """Immutable application settings."""

    provider: str = PROVIDER_OPENAI
    api_key: Optional[str] = None
    model: str = DEFAULT_MODELS[PROVIDER_OPENAI]
    multi_sample: bool = False
    reference_object: ReferenceObject = ReferenceObject.NONE
    timeout_s: float = 30.0
    transport_retries: int = 2
    temperature: float = 0.4
    history_backend: str = "file"
    history_path: Path = Path("~/.nutriscan/storage.json")
    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        dotenv_path: Optional[Path] = None,
    ) -> Settings:
        """
        Build settings from environment variables.

        Args:
            env: Variables to read (defaults to os.environ after loading .env)
            dotenv_path: Explicit .env file (defaults to discovery from cwd)

        Raises:
            ConfigurationError: If any value is invalid
        """
        if env is None:
            load_dotenv(dotenv_path)
            env = os.environ

        provider = env.get("NUTRISCAN_INFERENCE_PROVIDER", PROVIDER_OPENAI).strip().lower()
        if provider not in DEFAULT_MODELS:
            raise ConfigurationError(
                f"Unknown inference provider '{provider}'. "
                f"Use NUTRISCAN_INFERENCE_PROVIDER={PROVIDER_OPENAI} or {PROVIDER_GEMINI}"
            )

        api_key = env.get("NUTRISCAN_API_KEY") or env.get(PROVIDER_KEY_VARS[provider]) or None

        raw_reference = env.get("NUTRISCAN_REFERENCE_OBJECT", ReferenceObject.NONE.value).strip().lower()
        try:
            reference_object = ReferenceObject(raw_reference)
        except ValueError as exc:
            allowed = ", ".join(r.value for r in ReferenceObject)
            raise ConfigurationError(
                f"NUTRISCAN_REFERENCE_OBJECT must be one of {allowed}, got '{raw_reference}'"
            ) from exc

        history_backend = env.get("NUTRISCAN_HISTORY_BACKEND", "file").strip().lower()
        if history_backend not in HISTORY_BACKENDS:
            raise ConfigurationError(
                f"NUTRISCAN_HISTORY_BACKEND must be one of {', '.join(HISTORY_BACKENDS)}, "
                f"got '{history_backend}'"
            )

        log_level = env.get("NUTRISCAN_LOG_LEVEL", "INFO").strip().upper()
        if log_level not in LOG_LEVELS:
            raise ConfigurationError(f"NUTRISCAN_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")

        timeout_s = _float(env, "NUTRISCAN_TIMEOUT_S", 30.0, 1.0, 600.0)

        return cls(
            provider=provider,
            api_key=api_key,
            model=env.get("NUTRISCAN_MODEL") or DEFAULT_MODELS[provider],
            multi_sample=_bool(env, "NUTRISCAN_MULTI_SAMPLE", False),
            reference_object=reference_object,
            timeout_s=timeout_s,
            transport_retries=_int(env, "NUTRISCAN_TRANSPORT_RETRIES", 2),
            temperature=_float(env, "NUTRISCAN_TEMPERATURE", 0.4, 0.0, 2.0),
            history_backend=history_backend,
            history_path=Path(env.get("NUTRISCAN_HISTORY_PATH") or "~/.nutriscan/storage.json").expanduser(),
            log_level=log_level,
            log_json=_bool(env, "NUTRISCAN_LOG_JSON", False),
        )

    def analysis_config(
        self,
        multi_sample: Optional[bool] = None,
        reference_object: Optional[ReferenceObject] = None,
    ) -> AnalysisConfig:
        """Immutable run configuration, with optional per-run overrides."""
        return AnalysisConfig.for_mode(
            self.multi_sample if multi_sample is None else multi_sample,
            self.reference_object if reference_object is None else reference_object,
        )
