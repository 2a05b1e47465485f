from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import math
import os

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _decode_env_text(raw: bytes) -> str:
    for enc in ("utf-8-sig", "utf-8"):
        try:
            return raw.decode(enc)
        except UnicodeDecodeError:
            continue
    return ""


def _load_env_kv_file(path: Path, *, override: bool) -> None:
    """Load a simple KEY=VALUE file into os.environ.

    - BOM-tolerant (Windows)
    - Does not interpret backslash escapes (safe for C:\\Users\\...)
    - Strips optional surrounding quotes
    """
    if not path.is_file():
        return
    text = _decode_env_text(path.read_bytes())
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        if not key:
            continue
        if (value.startswith('"') and value.endswith('"')) or (value.startswith("'") and value.endswith("'")):
            value = value[1:-1]
        if override or key not in os.environ:
            os.environ[key] = value


def find_repo_root(start: Path) -> Path:
    """Best-effort find repository root from a file path."""
    p = start.resolve()
    for parent in [p] + list(p.parents):
        if (parent / ".git").exists():
            return parent
        if (parent / "pyproject.toml").exists() and (parent / "apps").is_dir():
            return parent
    # Fallback: apps/voicechat/core/settings.py
    return start.resolve().parents[3]


class Settings(BaseSettings):
    """Runtime settings.

    Secrets MUST come from .env or environment variables.
    Non-secrets may additionally live in config/voicechat/app.yaml.
    """

    model_config = SettingsConfigDict(env_prefix="VOICECHAT_", extra="ignore")

    # Server
    server_host: str = Field(default="127.0.0.1")
    server_port: int = Field(default=3000)
    web_dir: Path = Field(default=Path("web/voicechat"))
    app_yaml_path: Path = Field(default=Path("config/voicechat/app.yaml"))

    # Logging
    log_level: str = Field(default="INFO")
    logs_dir: Optional[Path] = Field(default=None)

    # Providers
    llm_provider: str = Field(default="gemini")
    image_provider: str = Field(default="openai")
    stt_provider: str = Field(default="google")

    # Credentials / models
    gemini_api_key: str = Field(default="")
    gemini_model: str = Field(default="gemini-2.0-flash-lite")
    gemini_image_model: str = Field(default="imagen-3.0-generate-002")
    openai_api_key: str = Field(default="")
    openai_base_url: str = Field(default="")
    openai_model: str = Field(default="gpt-4o-mini")
    openai_image_model: str = Field(default="gpt-image-1")
    openai_whisper_model: str = Field(default="whisper-1")
    request_timeout: float = Field(default=60.0)

    # Chat
    chat_max_history: int = Field(default=20, ge=2, le=500)
    chat_max_sessions: int = Field(default=256, ge=1, le=100000)
    system_prompt: str = Field(default="")
    llm_temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    llm_max_output_tokens: Optional[int] = Field(default=None, ge=1)

    # STT
    stt_language: str = Field(default="en-US")

    # TTS
    tts_default_voice: str = Field(default="kazi")
    tts_max_chars: int = Field(default=1024)
    tts_min_speed: float = Field(default=0.5)
    tts_max_speed: float = Field(default=2.0)
    tts_sample_rate_hz: int = Field(default=24000)

    # OpenAI-compatible speech endpoint (secondary voice catalog)
    compat_tts_base_url: str = Field(default="http://localhost:5173/v1")
    compat_tts_api_key: str = Field(default="not-needed")
    compat_tts_model: str = Field(default="tts-1")
    compat_tts_timeout: float = Field(default=10.0)


def load_app_yaml(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        return {}
    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return raw if isinstance(raw, dict) else {}


def _map_compat_env(target: str, candidates: tuple[str, ...]) -> None:
    # Only map if missing; never log values.
    if (os.getenv(target) or "").strip():
        return
    for k in candidates:
        v = os.getenv(k)
        if v and v.strip():
            os.environ[target] = v
            return


def load_settings(*, env_file: Optional[Path] = None) -> Settings:
    # pydantic-settings reads os.environ; .env files are loaded here to avoid
    # Windows backslash escape issues in python-dotenv.
    repo_root = find_repo_root(Path(__file__))

    def _resolve(p: Path) -> Path:
        return p if p.is_absolute() else (repo_root / p).resolve()

    if env_file is not None:
        _load_env_kv_file(_resolve(env_file), override=True)
    else:
        env_file_var = (os.getenv("VOICECHAT_ENV_FILE") or "").strip()
        if env_file_var:
            _load_env_kv_file(_resolve(Path(env_file_var)), override=True)
        else:
            # Either a .env/ folder (.env/.env.voicechat) or a plain .env file.
            env_path = repo_root / ".env"
            if env_path.is_dir():
                _load_env_kv_file(env_path / ".env.voicechat", override=True)
            else:
                _load_env_kv_file(env_path, override=False)

    _map_compat_env("VOICECHAT_GEMINI_API_KEY", ("GEMINI_API_KEY", "GOOGLE_API_KEY", "GOOGLE_GEMINI_API_KEY"))
    _map_compat_env("VOICECHAT_OPENAI_API_KEY", ("OPENAI_API_KEY", "OPENAI_KEY"))
    _map_compat_env("VOICECHAT_OPENAI_BASE_URL", ("OPENAI_BASE_URL",))

    settings = Settings()
    settings.web_dir = _resolve(settings.web_dir)
    settings.app_yaml_path = _resolve(settings.app_yaml_path)
    apply_app_yaml(settings, load_app_yaml(settings.app_yaml_path))
    return settings


def _coerce_int(val: object, default: int, *, min_value: int, max_value: int) -> int:
    try:
        out = int(val)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    return max(min_value, min(max_value, out))


def _coerce_float(val: object, default: Optional[float], *, min_value: float, max_value: float) -> Optional[float]:
    try:
        out = float(val)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    if math.isnan(out):
        return default
    return max(min_value, min(max_value, out))


def chat_generation_config(settings: Settings) -> Dict[str, Any]:
    """Provider-neutral sampling options; unset values are left out."""
    out: Dict[str, Any] = {}
    if settings.llm_temperature is not None:
        out["temperature"] = settings.llm_temperature
    if settings.llm_max_output_tokens is not None:
        out["max_output_tokens"] = settings.llm_max_output_tokens
    return out


def apply_app_yaml(settings: Settings, appcfg: Dict[str, Any]) -> None:
    """Overlay non-secret values from app.yaml onto settings."""
    chat = appcfg.get("chat")
    if isinstance(chat, dict):
        prompt = str(chat.get("system_prompt") or "").strip()
        if prompt:
            settings.system_prompt = prompt
        if "max_history" in chat:
            settings.chat_max_history = _coerce_int(
                chat.get("max_history"),
                settings.chat_max_history,
                min_value=2,
                max_value=500,
            )
        if "max_sessions" in chat:
            settings.chat_max_sessions = _coerce_int(
                chat.get("max_sessions"),
                settings.chat_max_sessions,
                min_value=1,
                max_value=100000,
            )
        if chat.get("temperature") is not None:
            settings.llm_temperature = _coerce_float(
                chat.get("temperature"),
                settings.llm_temperature,
                min_value=0.0,
                max_value=2.0,
            )
        if chat.get("max_output_tokens") is not None:
            settings.llm_max_output_tokens = _coerce_int(
                chat.get("max_output_tokens"),
                settings.llm_max_output_tokens,  # type: ignore[arg-type]
                min_value=1,
                max_value=65536,
            )

    providers = appcfg.get("providers")
    if isinstance(providers, dict):
        llm = str(providers.get("llm") or "").strip().lower()
        if llm:
            settings.llm_provider = llm
        image = str(providers.get("image") or "").strip().lower()
        if image:
            settings.image_provider = image
        stt = str(providers.get("stt") or "").strip().lower()
        if stt:
            settings.stt_provider = stt

    tts = appcfg.get("tts")
    if isinstance(tts, dict):
        voice = str(tts.get("default_voice") or "").strip()
        if voice:
            settings.tts_default_voice = voice
        base_url = str(tts.get("compat_base_url") or "").strip()
        if base_url:
            settings.compat_tts_base_url = base_url
