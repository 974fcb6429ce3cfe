"""
Carbon Tracker — Token Estimator
Blended character/word heuristic calibrated against recorded data.
"""

import math
import re

from carbon_tracker.core.config import settings

CHAR_WEIGHT = 0.6
WORD_WEIGHT = 0.4

_WHITESPACE = re.compile(r"\s+")


def count_words(text: str) -> int:
    return len(_WHITESPACE.split(text))


def estimate_tokens(text: str) -> int:
    """Estimate tokens as ceil(0.6 * chars / 4 + 0.4 * words), at least 1."""
    char_count = len(text)
    word_count = count_words(text)
    estimate = CHAR_WEIGHT * (char_count / settings.CHARS_PER_TOKEN) + WORD_WEIGHT * word_count
    return max(1, math.ceil(estimate))
