from enum import Enum


class SkimMode(str, Enum):
    MICRO_VACUUM = "micro_vacuum"
    SPREAD_SKIM = "spread_skim"
    THETA_SKIM = "theta_skim"
    VWAP_BOUNCE = "vwap_bounce"
    FUNDING_RATE = "funding_rate"
    FLASH_ARB = "flash_arb"
    CORRELATION_SKIM = "correlation_skim"
    NEWS_VELOCITY = "news_velocity"
    ORDERFLOW_SKIM = "orderflow_skim"
    VOL_REGIME = "vol_regime"
    ALL = "all"


class SkimFrequency(str, Enum):
    ULTRA_FAST = "ultra_fast"
    FAST = "fast"
    NORMAL = "normal"
    CONSERVATIVE = "conservative"
