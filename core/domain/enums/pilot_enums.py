from enum import Enum


class RiskDNA(str, Enum):
    ULTRA_SAFE = "ultra_safe"
    CAREFUL = "careful"
    BALANCED = "balanced"
    GROWTH = "growth"
    AGGRESSIVE = "aggressive"
    YOLO = "yolo"


class DepositMode(str, Enum):
    ONE_TIME = "one_time"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


class TradingStyle(str, Enum):
    PASSIVE = "passive"
    ACTIVE = "active"
    HYBRID = "hybrid"
    AGGRESSIVE_DAY = "aggressive_day"
    SWING = "swing"
    SCALPING = "scalping"
    AUTO_SKIM = "auto_skim"


class AssetMix(str, Enum):
    STOCKS_ONLY = "stocks_only"
    CRYPTO_ONLY = "crypto_only"
    FOREX_ONLY = "forex_only"
    DIVERSIFIED = "diversified"
    YIELD_FOCUSED = "yield_focused"
    GROWTH_FOCUSED = "growth_focused"
    CUSTOM = "custom"


class PlainEnglishLevel(str, Enum):
    ELI5 = "eli5"
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


class NotificationFrequency(str, Enum):
    REAL_TIME = "real_time"
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"


class PilotStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    EXITING = "exiting"
    CLOSED = "closed"


class TradeSide(str, Enum):
    BUY = "buy"
    SELL = "sell"


class TradeStatus(str, Enum):
    PENDING = "pending"
    EXECUTED = "executed"
    PARTIAL = "partial"
    FAILED = "failed"


class CommentaryType(str, Enum):
    INFO = "info"
    TRADE = "trade"
    ALERT = "alert"
    EDUCATION = "education"


class ExitStrategy(str, Enum):
    IMMEDIATE = "immediate"
    GRADUAL_1WEEK = "gradual_1week"
    GRADUAL_1MONTH = "gradual_1month"
    OPTIMAL = "optimal"


class TimeTravelScenario(str, Enum):
    LAST_MONTH = "last_month"
    LAST_QUARTER = "last_quarter"
    LAST_YEAR = "last_year"
    CUSTOM = "custom"


class Sentiment(str, Enum):
    GREAT = "great"
    GOOD = "good"
    OKAY = "okay"
    CONCERNING = "concerning"
    BAD = "bad"
