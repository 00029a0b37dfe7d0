from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DISABLE_TTS_ENV = "DONTPICK_DISABLE_TTS"
TTS_BACKEND_ENV = "DONTPICK_TTS_BACKEND"
SEED_ENV = "DONTPICK_SEED"
TICK_INTERVAL_ENV = "DONTPICK_TICK_INTERVAL_S"
ANNOUNCE_DELAY_ENV = "DONTPICK_ANNOUNCE_DELAY_S"
LOG_LEVEL_ENV = "DONTPICK_LOG_LEVEL"


@dataclass(frozen=True, slots=True)
class GameSettings:
    disable_tts: bool = False
    tts_backend: str | None = None
    seed: int | None = None
    tick_interval_s: float = 0.1
    announce_delay_s: float = 1.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "GameSettings":
        env = os.environ if environ is None else environ
        defaults = cls()

        backend = env.get(TTS_BACKEND_ENV, "").strip().lower() or None
        log_level = env.get(LOG_LEVEL_ENV, "").strip().upper() or defaults.log_level
        if not isinstance(logging.getLevelName(log_level), int):
            logger.warning("Ignoring unknown %s=%r", LOG_LEVEL_ENV, log_level)
            log_level = defaults.log_level

        return cls(
            disable_tts=env.get(DISABLE_TTS_ENV, "0").strip() == "1",
            tts_backend=backend,
            seed=_parse_int(env, SEED_ENV),
            tick_interval_s=_parse_positive_float(env, TICK_INTERVAL_ENV, defaults.tick_interval_s),
            announce_delay_s=_parse_non_negative_float(env, ANNOUNCE_DELAY_ENV, defaults.announce_delay_s),
            log_level=log_level,
        )


def configure_logging(level: str = "INFO") -> None:
    """Configure application-wide logging with a standard format."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _parse_int(env: Mapping[str, str], name: str) -> int | None:
    raw = env.get(name, "").strip()
    if raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", name, raw)
        return None


def _parse_positive_float(env: Mapping[str, str], name: str, fallback: float) -> float:
    value = _parse_float(env, name, fallback)
    if value <= 0.0:
        logger.warning("Ignoring non-positive %s=%r", name, value)
        return fallback
    return value


def _parse_non_negative_float(env: Mapping[str, str], name: str, fallback: float) -> float:
    value = _parse_float(env, name, fallback)
    if value < 0.0:
        logger.warning("Ignoring negative %s=%r", name, value)
        return fallback
    return value


def _parse_float(env: Mapping[str, str], name: str, fallback: float) -> float:
    raw = env.get(name, "").strip()
    if raw == "":
        return fallback
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r", name, raw)
        return fallback
