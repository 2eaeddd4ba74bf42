"""
Configuration and environment loading for ChessGPT.

- Loads settings.yml (YAML) from repo root if present; falls back to environment variables.
- Exposes SETTINGS with keys used across the project (API keys, engine path, tuning knobs).
- load_settings() builds a fresh Settings so components and tests can pass their own.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Callable, Optional

import yaml
from dotenv import load_dotenv

load_dotenv()


def _repo_root() -> str:
    # this file: src/chessgpt/config.py → repo root is two levels up
    return os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))


def _load_yaml(path: str) -> dict:
    if not os.path.isfile(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return data if isinstance(data, dict) else {}


def _getter(cfg: dict) -> Callable[..., Any]:
    def _get(name: str, default: Any, cast: Callable[[Any], Any] | None = None) -> Any:
        if name in cfg:
            val = cfg[name]
            return cast(val) if cast else val
        env = os.environ.get(name)
        if env is not None and env != "":
            return cast(env) if cast else env
        return default

    return _get


@dataclass(frozen=True)
class Settings:
    # OpenAI auth / endpoint
    openai_api_key: str
    openai_org_id: str
    openai_base_url: str

    # Model resolver knobs
    openai_model: str
    openai_temperature: float
    openai_max_tokens: int
    openai_num_completions: int
    openai_max_attempts: int
    openai_retry_delay_s: float
    openai_timeout_s: float
    candidate_policy: str  # "first" | "frequency"

    # Engine gateway knobs
    stockfish_path: str
    stockfish_depth: int
    stockfish_timeout_s: float
    stockfish_handshake_timeout_s: float

    # Request validation / arbitration
    max_fen_length: int
    max_an_length: int
    ai_color: str  # "white" | "black"
    default_bot: str

    # Server
    host: str
    port: int
    log_level: str


def load_settings(path: Optional[str] = None) -> Settings:
    """Build Settings from YAML (takes precedence), then env vars, then defaults."""
    cfg = _load_yaml(path or os.path.join(_repo_root(), "settings.yml"))
    _get = _getter(cfg)
    return Settings(
        openai_api_key=_get("OPENAI_API_KEY", ""),
        openai_org_id=_get("OPENAI_ORG_ID", ""),
        openai_base_url=_get("OPENAI_BASE_URL", ""),
        openai_model=_get("CHESSGPT_OPENAI_MODEL", "gpt-4o"),
        openai_temperature=float(_get("CHESSGPT_OPENAI_TEMPERATURE", 1.0, cast=float)),
        openai_max_tokens=int(_get("CHESSGPT_OPENAI_MAX_TOKENS", 4, cast=int)),
        openai_num_completions=int(_get("CHESSGPT_OPENAI_NUM_COMPLETIONS", 5, cast=int)),
        openai_max_attempts=max(1, int(_get("CHESSGPT_OPENAI_MAX_ATTEMPTS", 3, cast=int))),
        openai_retry_delay_s=float(_get("CHESSGPT_OPENAI_RETRY_DELAY_S", 2.5, cast=float)),
        openai_timeout_s=float(_get("CHESSGPT_OPENAI_TIMEOUT_S", 30.0, cast=float)),
        candidate_policy=str(_get("CHESSGPT_CANDIDATE_POLICY", "first")).lower(),
        stockfish_path=_get("STOCKFISH_PATH", "stockfish"),
        stockfish_depth=int(_get("CHESSGPT_STOCKFISH_DEPTH", 15, cast=int)),
        stockfish_timeout_s=float(_get("CHESSGPT_STOCKFISH_TIMEOUT_S", 5.0, cast=float)),
        stockfish_handshake_timeout_s=float(_get("CHESSGPT_STOCKFISH_HANDSHAKE_TIMEOUT_S", 10.0, cast=float)),
        max_fen_length=int(_get("CHESSGPT_MAX_FEN_LENGTH", 100, cast=int)),
        max_an_length=int(_get("CHESSGPT_MAX_AN_LENGTH", 2000, cast=int)),
        ai_color=str(_get("CHESSGPT_AI_COLOR", "black")).lower(),
        default_bot=str(_get("CHESSGPT_DEFAULT_BOT", "stockfish")).lower(),
        host=_get("HOST", "0.0.0.0"),
        port=int(_get("PORT", 3500, cast=int)),
        log_level=str(_get("LOG_LEVEL", "INFO")).upper(),
    )


SETTINGS = load_settings()
