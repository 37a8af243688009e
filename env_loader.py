# env_loader.py
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

_LOADED = False


def _project_dir() -> Path:
    # folder of this file is the project root
    return Path(__file__).resolve().parent


def truthy(v: str | None) -> bool:
    s = (v or "").strip().lower()
    return s in ("1", "true", "yes", "y", "on")


def load_project_env(profile: str | None = None, override: bool = False) -> List[str]:
    """
    profile precedence:
      1) explicit profile argument
      2) APP_PROFILE env var
      3) default "personal"

    load order:
      - .env.<profile> first, when present
      - then .env (never overrides values already loaded)
    """
    global _LOADED
    if _LOADED:
        return []

    proj = _project_dir()

    p = (profile or os.getenv("APP_PROFILE") or "personal").strip().lower()
    os.environ["APP_PROFILE"] = p

    loaded: List[str] = []
    env_profile = proj / f".env.{p}"
    env_default = proj / ".env"

    if env_profile.exists():
        load_dotenv(dotenv_path=env_profile, override=override)
        loaded.append(str(env_profile))

    if env_default.exists():
        load_dotenv(dotenv_path=env_default, override=False if loaded else override)
        loaded.append(str(env_default))

    _LOADED = True
    return loaded


def _env_float(key: str, default: float) -> float:
    raw = (os.getenv(key) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{key} must be a number, got {raw!r}")


def _env_int(key: str, default: int) -> int:
    raw = (os.getenv(key) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {raw!r}")


@dataclass
class Settings:
    lockfile: Optional[str] = None
    catalog_path: str = "champions.json"
    catalog_locale: str = "en_US"

    poll_interval: float = 0.1
    check_pause: float = 0.2
    cooldown: float = 10.0
    lcu_timeout: float = 2.0

    auto_accept: bool = True
    rune_swap: bool = False

    control_host: str = "127.0.0.1"
    control_port: int = 12146
    control_token: str = ""

    log_file: Optional[str] = None
    profile: str = "personal"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            lockfile=(os.getenv("LOL_LOCKFILE") or "").strip() or None,
            catalog_path=(os.getenv("AUTOPILOT_CATALOG") or "champions.json").strip(),
            catalog_locale=(os.getenv("AUTOPILOT_CATALOG_LOCALE") or "en_US").strip(),
            poll_interval=_env_float("AUTOPILOT_POLL_INTERVAL", 0.1),
            check_pause=_env_float("AUTOPILOT_CHECK_PAUSE", 0.2),
            cooldown=_env_float("AUTOPILOT_COOLDOWN", 10.0),
            lcu_timeout=_env_float("AUTOPILOT_LCU_TIMEOUT", 2.0),
            auto_accept=truthy(os.getenv("AUTOPILOT_AUTO_ACCEPT") or "1"),
            rune_swap=truthy(os.getenv("AUTOPILOT_RUNE_SWAP") or "0"),
            control_host=(os.getenv("AUTOPILOT_CONTROL_HOST") or "127.0.0.1").strip(),
            control_port=_env_int("AUTOPILOT_CONTROL_PORT", 12146),
            control_token=(os.getenv("AUTOPILOT_CONTROL_TOKEN") or "").strip(),
            log_file=(os.getenv("AUTOPILOT_LOG_FILE") or "").strip() or None,
            profile=(os.getenv("APP_PROFILE") or "personal").strip().lower(),
        )

    def resolve_path(self, name: str) -> Path:
        """Relative paths are taken from the project folder, not the CWD."""
        p = Path(name)
        if p.is_absolute():
            return p
        return _project_dir() / p
