"""Turn market distributions into pick records and grade picks after the match."""

import logging
import re
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional

from .algo_settings import AlgoSettings
from .markets import AggregationScope, MarketDistribution

logger = logging.getLogger(__name__)

_OVER_UNDER_LABEL = re.compile(r"^(over|under)\s+([0-9]+(?:\.[0-9]+)?)$", re.IGNORECASE)
_DOUBLE_CHANCE_PREFIX = "Double Chance "


class MarketCategory(Enum):
    """Market family a pick belongs to."""

    OVER_UNDER = "over_under"
    DOUBLE_CHANCE = "double_chance"


@dataclass(frozen=True)
class PickRecord:
    """Qualification decision for one (fixture, market line) pair."""

    fixture_id: int
    market_label: str
    market_category: MarketCategory
    percent_green: int
    sample_size: int
    meets_criteria: bool
    team_id: Optional[int] = None
    scope: AggregationScope = AggregationScope.TEAM

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["market_category"] = self.market_category.value
        data["scope"] = self.scope.value
        return data


def meets_criteria(
    sample_size: int,
    percent: int,
    settings: AlgoSettings,
    scope: AggregationScope = AggregationScope.TEAM,
) -> bool:
    """Both the sample-size gate and the percentage gate must pass."""
    return (
        sample_size >= settings.minimum_sample_for(scope)
        and percent >= settings.minimum_qualifying_percent
    )


def evaluate_distribution(
    fixture_id: int,
    distribution: MarketDistribution,
    settings: AlgoSettings,
) -> List[PickRecord]:
    """Judge every selected line of a distribution independently.

    Over and under records are produced for each goal line in
    ``settings.lines``, followed by the selected double-chance buckets.
    """
    sample_size = distribution.sample_size
    scope = distribution.scope

    def record(label: str, category: MarketCategory, percent: int) -> PickRecord:
        return PickRecord(
            fixture_id=fixture_id,
            market_label=label,
            market_category=category,
            percent_green=percent,
            sample_size=sample_size,
            meets_criteria=meets_criteria(sample_size, percent, settings, scope),
            team_id=distribution.team_id,
            scope=scope,
        )

    records = []
    for line in settings.goal_lines:
        records.append(record(f"Over {line}", MarketCategory.OVER_UNDER, distribution.over[line].percent))
        records.append(record(f"Under {line}", MarketCategory.OVER_UNDER, distribution.under[line].percent))
    for key in settings.double_chance_lines:
        records.append(record(
            f"{_DOUBLE_CHANCE_PREFIX}{key}",
            MarketCategory.DOUBLE_CHANCE,
            distribution.double_chance[key].percent,
        ))

    qualifying = sum(1 for r in records if r.meets_criteria)
    logger.debug(f"Fixture {fixture_id}: {qualifying}/{len(records)} lines meet criteria")
    return records


def best_pick(records: Iterable[PickRecord]) -> Optional[PickRecord]:
    """Highest-percentage qualifying record; the earliest one wins ties."""
    best = None
    for record in records:
        if not record.meets_criteria:
            continue
        if best is None or record.percent_green > best.percent_green:
            best = record
    return best


def settle_pick(market_label: str, goals_home: int, goals_away: int) -> Optional[bool]:
    """Grade a pick label against a final score.

    Returns:
        True if the pick won, False if it lost, None if the label is not
        a recognised market
    """
    label = market_label.strip()
    if label.startswith(_DOUBLE_CHANCE_PREFIX):
        label = label[len(_DOUBLE_CHANCE_PREFIX):].strip()

    if label == "1X":
        return goals_home >= goals_away
    if label == "X2":
        return goals_away >= goals_home
    if label == "12":
        return goals_home != goals_away

    match = _OVER_UNDER_LABEL.match(label)
    if not match:
        return None
    line = float(match.group(2))
    total = goals_home + goals_away
    if match.group(1).lower() == "over":
        return total > line
    return total < line
