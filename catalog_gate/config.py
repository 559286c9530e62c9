from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field


# ---------------------------
# Paths
# ---------------------------

PROJECT_ROOT = Path(__file__).resolve().parents[1]

LOG_DIR = PROJECT_ROOT / "logs"


# ---------------------------
# Env flag names
# ---------------------------

ENV_ENFORCE_BRAND_GATE = "ENFORCE_BRAND_GATE"
ENV_HARD_BLOCKS_ENABLED = "CATEGORY_HARD_BLOCKS_ENABLED"
ENV_MATCH_BOOST = "CATEGORY_MATCH_BOOST"
ENV_CONFLICT_PENALTY = "CATEGORY_CONFLICT_PENALTY"
ENV_CACHE_TTL_MS = "CACHE_TTL_MS"
ENV_CACHE_MAX_ITEMS = "CACHE_MAX_ITEMS"


# ---------------------------
# Scoring defaults
# ---------------------------

DEFAULT_MATCH_BOOST = 3.0
DEFAULT_CONFLICT_PENALTY = 5.0


# ---------------------------
# Cache policy
# ---------------------------

MAX_ITEMS = 1000
DEFAULT_CACHE_TTL_MS = 10_800_000  # 3h, lifetime of a warm worker


# ---------------------------
# Brand match confidence
# ---------------------------

# Salvage via free-text name is weak evidence; downstream scoring can discount it.
CONFIDENCE_BRAND_TAGS = 1.0
CONFIDENCE_BRAND_FIELD = 0.9
CONFIDENCE_NAME_SALVAGE = 0.4


def _env_flag(environ: Mapping[str, str], name: str, default: bool = False) -> bool:
    raw = environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() == "true"


class GateSettings(BaseModel):
    """
    Feature flags and magnitudes for the gates.

    Read from the environment at call time via :meth:`from_env`, so a
    flag flipped between two invocations takes effect on the next one.
    ``match_boost`` left unset means every category mapping uses its own
    configured boost.
    """

    enforce_brand_gate: bool = False
    hard_blocks_enabled: bool = False
    match_boost: Optional[float] = Field(default=None, ge=0)
    conflict_penalty: float = Field(default=DEFAULT_CONFLICT_PENALTY, ge=0)
    cache_ttl_ms: int = Field(default=DEFAULT_CACHE_TTL_MS, ge=0)
    cache_max_items: int = Field(default=MAX_ITEMS, ge=1)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "GateSettings":
        env = os.environ if environ is None else environ
        values = {
            "enforce_brand_gate": _env_flag(env, ENV_ENFORCE_BRAND_GATE),
            "hard_blocks_enabled": _env_flag(env, ENV_HARD_BLOCKS_ENABLED),
        }
        if env.get(ENV_MATCH_BOOST):
            values["match_boost"] = float(env[ENV_MATCH_BOOST])
        if env.get(ENV_CONFLICT_PENALTY):
            values["conflict_penalty"] = float(env[ENV_CONFLICT_PENALTY])
        if env.get(ENV_CACHE_TTL_MS):
            values["cache_ttl_ms"] = int(env[ENV_CACHE_TTL_MS])
        if env.get(ENV_CACHE_MAX_ITEMS):
            values["cache_max_items"] = int(env[ENV_CACHE_MAX_ITEMS])
        return cls(**values)

    def boost_for(self, mapping_boost: float) -> float:
        """Effective match boost: the env override if set, else the mapping's own."""
        return self.match_boost if self.match_boost is not None else mapping_boost


def load_settings(settings: Optional[GateSettings] = None) -> GateSettings:
    return settings if settings is not None else GateSettings.from_env()
