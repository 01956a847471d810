"""
Skill-threshold checks against a player's best tracker.

MMR is the highest playlist ``rating`` of the most recent season, RANK the
highest playlist ``tier``. ELO and CUSTOM have no extraction rule and fail
closed instead of letting the player through.
"""
from typing import Any, Iterable, Optional

from league_service.core.exceptions import LeagueJoinValidationError
from league_service.schemas.league_settings import SkillMetric, SkillRequirements

# Playlist field holding each metric
METRIC_FIELDS = {
    SkillMetric.MMR: "rating",
    SkillMetric.RANK: "tier",
}


def _latest_season(seasons: Iterable[Any]) -> Optional[Any]:
    seasons = list(seasons or [])
    if not seasons:
        return None
    return max(seasons, key=lambda season: season.season_number)


def _numeric(value) -> Optional[float]:
    if isinstance(value, dict):
        value = value.get("value")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def extract_skill_value(tracker: Any, metric: SkillMetric) -> Optional[float]:
    """Best value of ``metric`` across the playlists of the tracker's latest season, or None."""
    field = METRIC_FIELDS.get(metric)
    if field is None:
        raise LeagueJoinValidationError(
            f"Skill metric {metric.value} is not supported for league join validation"
        )

    season = _latest_season(getattr(tracker, "seasons", None))
    if season is None:
        return None

    values = [
        _numeric(playlist.get(field))
        for playlist in (season.playlists or {}).values()
        if isinstance(playlist, dict)
    ]
    values = [v for v in values if v is not None]
    return max(values) if values else None


def _fmt(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def validate_skill_requirements(tracker: Any, requirements: SkillRequirements) -> None:
    metric = requirements.skill_metric
    if metric not in METRIC_FIELDS:
        raise LeagueJoinValidationError(
            f"Skill metric {metric.value} is not supported for league join validation"
        )
    if tracker is None:
        raise LeagueJoinValidationError(
            "Player must have at least one active tracker to meet this league's skill requirements"
        )

    value = extract_skill_value(tracker, metric)
    if value is None:
        raise LeagueJoinValidationError(f"Unable to determine player's {metric.value} from tracker data")

    if requirements.min_skill is not None and value < requirements.min_skill:
        raise LeagueJoinValidationError(
            f"Player {metric.value} {_fmt(value)} is below the minimum required {_fmt(requirements.min_skill)}"
        )
    if requirements.max_skill is not None and value > requirements.max_skill:
        raise LeagueJoinValidationError(
            f"Player {metric.value} {_fmt(value)} exceeds the maximum allowed {_fmt(requirements.max_skill)}"
        )
