"""User-adjustable pick thresholds for one (user, team) pair.

Unlike the application Settings, these values come from end users, so they
are never rejected: missing or unusable fields take their defaults and
out-of-range values are clamped to the nearest bound.

Usage:
    from football_analysis.analysis import normalize_algo_settings

    settings = normalize_algo_settings({"minimumQualifyingPercent": 150})
    print(settings.minimum_qualifying_percent)  # 100
"""

import math
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, model_validator

from .markets import DOUBLE_CHANCE_KEYS, GOAL_LINES, AggregationScope

DEFAULT_MIN_SAMPLE_SIZE = 5
DEFAULT_MIN_QUALIFYING_PERCENT = 60
DEFAULT_MIN_LEAGUE_SAMPLE_SIZE = 10
DEFAULT_WINDOW_SIZE = 30
DEFAULT_LINES: Tuple[str, ...] = ("1.5", "2.5", "3.5", "1X", "X2", "12")

WINDOW_SIZE_RANGE = (5, 60)
LEAGUE_SAMPLE_RANGE = (1, 200)
PERCENT_RANGE = (0, 100)

# Accepted spellings per field; the first one is the canonical name.
_FIELD_KEYS: Dict[str, Tuple[str, ...]] = {
    "minimum_sample_size": ("minimum_sample_size", "minimumSampleSize", "min_matches", "minMatches"),
    "minimum_qualifying_percent": ("minimum_qualifying_percent", "minimumQualifyingPercent"),
    "minimum_league_sample_size": (
        "minimum_league_sample_size", "minimumLeagueSampleSize",
        "min_league_matches", "minLeagueMatches",
    ),
    "window_size": ("window_size", "windowSize"),
    "lines": ("lines",),
}


def _canonicalize(raw: Any) -> Dict[str, Any]:
    """Map any accepted key spelling onto canonical field names."""
    if not isinstance(raw, Mapping):
        return {}
    values: Dict[str, Any] = {}
    for name, keys in _FIELD_KEYS.items():
        for key in keys:
            if raw.get(key) is not None:
                values[name] = raw[key]
                break
    return values


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _clamp_int(value: Any, default: int, low: int, high: int) -> int:
    number = _number(value)
    if number is None:
        number = default
    rounded = int(math.floor(number + 0.5))
    return max(low, min(high, rounded))


def _line_label(value: Any) -> Optional[str]:
    if isinstance(value, str):
        cleaned = "".join(value.split()).upper()
        if cleaned in DOUBLE_CHANCE_KEYS:
            return cleaned
    number = _number(value)
    if number is None:
        return None
    return next((line for line in GOAL_LINES if number == float(line)), None)


def _normalize_lines(value: Any) -> Tuple[str, ...]:
    if isinstance(value, str):
        items: Iterable[Any] = value.split(",")
    elif isinstance(value, (list, tuple, set, frozenset)):
        items = value
    else:
        return DEFAULT_LINES

    labels = {label for label in map(_line_label, items) if label is not None}
    ordered = tuple(line for line in GOAL_LINES + DOUBLE_CHANCE_KEYS if line in labels)
    return ordered or DEFAULT_LINES


class AlgoSettings(BaseModel):
    """Complete, validated pick thresholds."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    minimum_sample_size: int = DEFAULT_MIN_SAMPLE_SIZE
    minimum_qualifying_percent: int = DEFAULT_MIN_QUALIFYING_PERCENT
    minimum_league_sample_size: int = DEFAULT_MIN_LEAGUE_SAMPLE_SIZE
    window_size: int = DEFAULT_WINDOW_SIZE
    lines: Tuple[str, ...] = DEFAULT_LINES

    @model_validator(mode="before")
    @classmethod
    def _fill_and_clamp(cls, data: Any) -> Dict[str, Any]:
        values = _canonicalize(data)

        window_size = _clamp_int(values.get("window_size"), DEFAULT_WINDOW_SIZE, *WINDOW_SIZE_RANGE)
        return {
            "window_size": window_size,
            "minimum_sample_size": _clamp_int(
                values.get("minimum_sample_size"), DEFAULT_MIN_SAMPLE_SIZE, 1, window_size
            ),
            "minimum_qualifying_percent": _clamp_int(
                values.get("minimum_qualifying_percent"),
                DEFAULT_MIN_QUALIFYING_PERCENT,
                *PERCENT_RANGE,
            ),
            "minimum_league_sample_size": _clamp_int(
                values.get("minimum_league_sample_size"),
                DEFAULT_MIN_LEAGUE_SAMPLE_SIZE,
                *LEAGUE_SAMPLE_RANGE,
            ),
            "lines": _normalize_lines(values.get("lines", DEFAULT_LINES)),
        }

    @property
    def goal_lines(self) -> Tuple[str, ...]:
        return tuple(line for line in self.lines if line in GOAL_LINES)

    @property
    def double_chance_lines(self) -> Tuple[str, ...]:
        return tuple(line for line in self.lines if line in DOUBLE_CHANCE_KEYS)

    def minimum_sample_for(self, scope: AggregationScope) -> int:
        """Sample size a distribution of the given scope must reach."""
        if scope is AggregationScope.LEAGUE:
            return self.minimum_league_sample_size
        return self.minimum_sample_size


DEFAULT_ALGO_SETTINGS = AlgoSettings()


def normalize_algo_settings(raw: Optional[Mapping] = None) -> AlgoSettings:
    """Build complete AlgoSettings from a partial, absent or invalid record."""
    if isinstance(raw, AlgoSettings):
        return raw
    return AlgoSettings.model_validate(raw if raw is not None else {})


def merge_algo_settings(
    base: Optional[AlgoSettings],
    patch: Optional[Mapping],
) -> AlgoSettings:
    """Overlay a partial update on existing settings and renormalize the whole record."""
    merged = (base or DEFAULT_ALGO_SETTINGS).model_dump()
    merged.update(_canonicalize(patch))
    return normalize_algo_settings(merged)
