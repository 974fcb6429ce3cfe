"""
Carbon Tracker — Emission Calculator
Converts token counts into energy and carbon estimates.
"""

import logging
from typing import List, Optional

from carbon_tracker.core.config import settings

logger = logging.getLogger(__name__)


# Grams of CO2e per unit of each everyday activity
EQUIVALENTS = [
    ("Google queries", 0.2, "Number (annually)"),
    ("Boiling", 15.0, "cups water in kettle (annually)"),
    ("Video Streaming", 55.0, "Hours (annually)"),
]


def calculate_emissions(
    total_tokens: int,
    watts_per_token: Optional[float] = None,
    carbon_intensity: Optional[float] = None,
) -> float:
    """Estimate grams of CO2e for a number of tokens."""
    if watts_per_token is None:
        watts_per_token = settings.WATTS_PER_TOKEN
    if carbon_intensity is None:
        carbon_intensity = settings.CARBON_INTENSITY

    energy_wh = total_tokens * watts_per_token
    emissions = energy_wh * carbon_intensity
    logger.debug(f"Calculated emissions: {emissions:.6f} g CO2e for {total_tokens} tokens")
    return emissions


def generate_equivalents(emissions_g: float) -> List[dict]:
    """Express an emission total as everyday activities."""
    return [
        {
            "activity": activity,
            "amount": round(emissions_g / grams, 3),
            "unit": unit,
        }
        for activity, grams, unit in EQUIVALENTS
    ]
