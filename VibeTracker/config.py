"""
Application configuration read from environment variables (.env supported).
"""
import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

REWARD_CLOCK_USER = 'user'
REWARD_CLOCK_FIXED = 'fixed'
REWARD_CLOCK_SERVER = 'server'
REWARD_CLOCK_POLICIES = (REWARD_CLOCK_USER, REWARD_CLOCK_FIXED, REWARD_CLOCK_SERVER)


def _env_float(name, default):
    value = os.environ.get(name)
    if value in (None, ''):
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}")


class Config:
    """Base configuration"""

    FLASK_ENV = os.environ.get('FLASK_ENV', 'production')
    TESTING = False
    VERBOSE_LOGS = os.environ.get('VERBOSE_LOGS') == 'true'
    SENTRY_DSN = os.environ.get('SENTRY_DSN')

    # Calories fall back to this when the profile has no weight
    DEFAULT_BODY_WEIGHT_KG = _env_float('DEFAULT_BODY_WEIGHT_KG', 70.0)

    # Clock used for weekend/early-bird bonuses and streak calendar days:
    # 'user' = profile timezone (falls back to REWARD_TIMEZONE),
    # 'fixed' = always REWARD_TIMEZONE, 'server' = server local time
    REWARD_CLOCK = os.environ.get('REWARD_CLOCK', REWARD_CLOCK_USER)
    REWARD_TIMEZONE = os.environ.get('REWARD_TIMEZONE', 'UTC')

    # Route points stamped further than this in the future are rejected
    MAX_CLOCK_SKEW_SECONDS = _env_float('MAX_CLOCK_SKEW_SECONDS', 120.0)

    REDIS_URL = os.environ.get('REDIS_URL') or os.environ.get('REDIS_TLS_URL')
    EVENT_CHANNEL = os.environ.get('EVENT_CHANNEL', 'vibetracker:events')

    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')


class TestingConfig(Config):
    """Configuration for the test suite: no Redis, no Sentry, UTC fallback zone"""

    TESTING = True
    FLASK_ENV = 'testing'
    SENTRY_DSN = None
    REDIS_URL = None
    REWARD_CLOCK = REWARD_CLOCK_USER
    REWARD_TIMEZONE = 'UTC'
    DEFAULT_BODY_WEIGHT_KG = 70.0
    MAX_CLOCK_SKEW_SECONDS = 120.0


def validate_config(config) -> None:
    """Raise ValueError for settings the reward engine cannot work with"""
    clock = getattr(config, 'REWARD_CLOCK', REWARD_CLOCK_USER)
    if clock not in REWARD_CLOCK_POLICIES:
        raise ValueError(f"Invalid REWARD_CLOCK: {clock}")
    if getattr(config, 'DEFAULT_BODY_WEIGHT_KG', 0) <= 0:
        raise ValueError("DEFAULT_BODY_WEIGHT_KG must be positive")
