"""
Engine configuration loaded from the environment
"""
import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _get_float(name: str, default: Optional[float]) -> Optional[float]:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return float(value)


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return int(value)


@dataclass
class EngineSettings:
    """Runtime settings; every field maps to an environment variable"""
    max_concurrent: int = 10
    history_limit: int = 100
    failure_history_limit: int = 100
    max_retries: int = 3
    backoff_base: float = 1.0
    rate_limit_cooldown: float = 60.0
    node_timeout: Optional[float] = None
    effect_latency: float = 0.0
    log_level: str = "INFO"
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "EngineSettings":
        """Read FLOWRUNNER_* variables (after loading a .env file if present)"""
        load_dotenv(env_file)
        return cls(
            max_concurrent=_get_int("FLOWRUNNER_MAX_CONCURRENT", 10),
            history_limit=_get_int("FLOWRUNNER_HISTORY_LIMIT", 100),
            failure_history_limit=_get_int("FLOWRUNNER_FAILURE_HISTORY_LIMIT", 100),
            max_retries=_get_int("FLOWRUNNER_MAX_RETRIES", 3),
            backoff_base=_get_float("FLOWRUNNER_BACKOFF_BASE", 1.0),
            rate_limit_cooldown=_get_float("FLOWRUNNER_RATE_LIMIT_COOLDOWN", 60.0),
            node_timeout=_get_float("FLOWRUNNER_NODE_TIMEOUT", None),
            effect_latency=_get_float("FLOWRUNNER_EFFECT_LATENCY", 0.0),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            api_host=os.getenv("API_HOST", "0.0.0.0"),
            api_port=_get_int("API_PORT", 8000),
        )


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT
    )
