# backend/api/services/settings.py
"""
Runtime knobs read once from the environment (.env is loaded by main.py).
Components get these objects passed in; nothing below reads os.getenv lazily.
"""
from __future__ import annotations

import os
from functools import lru_cache

from pydantic import BaseModel, Field


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class IntakeSettings(BaseModel):
    max_gps_distance_meters: float = Field(500.0, gt=0)
    gps_enforcement_enabled: bool = False
    similarity_threshold: float = Field(0.7, ge=0, le=1)
    credibility_boost: float = Field(0.2, ge=0)
    nearby_radius_meters: float = Field(500.0, gt=0)
    ban_threshold: int = Field(3, ge=1)

    @classmethod
    def from_env(cls) -> "IntakeSettings":
        return cls(
            max_gps_distance_meters=float(os.getenv("GPS_MAX_DISTANCE_METERS", "500")),
            gps_enforcement_enabled=_env_bool("GPS_VALIDATION_ENABLED", False),
            similarity_threshold=float(os.getenv("SIMILARITY_THRESHOLD", "0.7")),
            credibility_boost=float(os.getenv("SIMILARITY_CREDIBILITY_BOOST", "0.2")),
        )


class CoinSettings(BaseModel):
    coins_per_report: int = Field(10, ge=0)
    coins_per_verified_report: int = Field(25, ge=0)
    min_coins_for_conversion: int = Field(100, ge=1)
    coin_to_birr_rate: float = Field(1.0, gt=0)

    @classmethod
    def from_env(cls) -> "CoinSettings":
        return cls(
            coins_per_report=int(os.getenv("COINS_PER_REPORT", "10")),
            coins_per_verified_report=int(os.getenv("COINS_PER_VERIFIED_REPORT", "25")),
            min_coins_for_conversion=int(os.getenv("MIN_COINS_FOR_CONVERSION", "100")),
            coin_to_birr_rate=float(os.getenv("COIN_TO_BIRR_RATE", "1")),
        )


@lru_cache(maxsize=1)
def get_intake_settings() -> IntakeSettings:
    return IntakeSettings.from_env()


@lru_cache(maxsize=1)
def get_coin_settings() -> CoinSettings:
    return CoinSettings.from_env()
