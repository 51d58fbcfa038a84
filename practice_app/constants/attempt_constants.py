"""Attempt, scoring and playback constants shared across the core layer."""

from decimal import Decimal

TICK_INTERVAL_SECONDS: float = 1.0
USER_SCROLL_SUPPRESSION_SECONDS: float = 5.0

# Points awarded for a question whose point value is missing or unparseable.
DEFAULT_QUESTION_POINTS: Decimal = Decimal("1")

GREAT_TIER_MIN_PERCENTAGE: int = 70
GOOD_TIER_MIN_PERCENTAGE: int = 40

UNLIMITED_ATTEMPTS: int = 0
