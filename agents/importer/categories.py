"""Keyword-based category inference for places and activities."""

from typing import Optional

from .models import CATEGORIES


# First match wins, so the order here decides names that hit several rows
# (e.g. "Temple Garden" is a temple, not nature).
CATEGORY_RULES = (
    (("mall", "shopping", "outlet"), "shopping"),
    (("cafe", "restaurant", "dinner", "lunch", "food"), "restaurant"),
    (("temple", "cave", "mosque"), "temple"),
    (("park", "garden", "highland", "nature"), "nature"),
    (("hotel", "check in", "check out", "vertica"), "hotel"),
    (("airport", "transfer", "→", "flight"), "transport"),
    (("playground", "play"), "playground"),
    (("aquaria", "zoo", "tower", "museum"), "attraction"),
)

DEFAULT_CATEGORY = "attraction"


def infer_category(name: str) -> str:
    """Classify a place or activity name into one of CATEGORIES."""
    name_lower = (name or "").lower()
    for keywords, category in CATEGORY_RULES:
        if any(keyword in name_lower for keyword in keywords):
            return category
    return DEFAULT_CATEGORY


def normalize_category(value: Optional[str], name: str) -> str:
    """Keep a category already in the closed set, otherwise infer one from name."""
    category = (value or "").strip().lower()
    if category in CATEGORIES:
        return category
    return infer_category(name)
