"""
Configuration
Environment-driven settings.

The bcrypt cost factor is the only tunable: cheap outside production so
test suites stay fast, expensive in production.
"""

import os


ENV_VAR = "FIELDCLOAK_ENV"
ROUNDS_VAR = "FIELDCLOAK_BCRYPT_ROUNDS"

DEVELOPMENT_ROUNDS = 4   # bcrypt minimum
PRODUCTION_ROUNDS = 10


def get_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def is_production() -> bool:
    return os.getenv(ENV_VAR, "").strip().lower() in {"prod", "production"}


def default_rounds() -> int:
    """
    Resolve the bcrypt cost factor for the current environment.

    An explicit FIELDCLOAK_BCRYPT_ROUNDS wins; otherwise production
    environments get PRODUCTION_ROUNDS and everything else gets
    DEVELOPMENT_ROUNDS.
    """
    fallback = PRODUCTION_ROUNDS if is_production() else DEVELOPMENT_ROUNDS
    return get_int(ROUNDS_VAR, fallback)
