"""Problem unlocking, route guards and timing helpers."""

from coderush.models import TIERS
from coderush.problems import get_problem_by_level

# Tier -> tier that must be solved first
UNLOCK_REQUIRES = {
    "easy": None,
    "medium": "easy",
    "hard": "medium",
}

TIME_FIELDS = {
    "easy": "time_easy_ms",
    "medium": "time_medium_ms",
    "hard": "time_hard_ms",
}

LOGIN_PATH = "/login"
HOME_PATH = "/"


def is_unlocked(level: str, solved: dict[str, bool] | None) -> bool:
    if solved is None or level not in UNLOCK_REQUIRES:
        return False
    required = UNLOCK_REQUIRES[level]
    return required is None or bool(solved.get(required))


def is_solved(level: str, solved: dict[str, bool] | None) -> bool:
    return bool(solved and solved.get(level))


def solved_count(solved: dict[str, bool] | None) -> int:
    if not solved:
        return 0
    return sum(1 for tier in TIERS if solved.get(tier))


def highest_unlocked(solved: dict[str, bool]) -> str:
    highest = TIERS[0]
    for tier in TIERS:
        if is_unlocked(tier, solved):
            highest = tier
    return highest


def solved_from_profile(row) -> dict[str, bool]:
    """A tier counts as solved once its time field is set."""
    if not row:
        return {tier: False for tier in TIERS}
    return {tier: row[TIME_FIELDS[tier]] is not None for tier in TIERS}


def resolve_route(path: str, authenticated: bool, solved: dict[str, bool] | None) -> str | None:
    """Return where to redirect for ``path``, or None if it may be rendered."""
    if not authenticated:
        return None if path == LOGIN_PATH else LOGIN_PATH

    if path == LOGIN_PATH:
        return HOME_PATH

    solved = solved or {}
    for tier in TIERS:
        problem = get_problem_by_level(tier)
        if problem and problem.route == path and not is_unlocked(tier, solved):
            return get_problem_by_level(highest_unlocked(solved)).route
    return None


def format_duration(ms: int) -> str:
    total_sec = max(int(ms), 0) // 1000
    h = total_sec // 3600
    m = (total_sec % 3600) // 60
    s = total_sec % 60
    if h > 0:
        return f"{h:02d}:{m:02d}:{s:02d}"
    return f"{m:02d}:{s:02d}"


def total_time(easy: int | None, medium: int | None, hard: int | None) -> int | None:
    times = [t for t in (easy, medium, hard) if t is not None]
    if not times:
        return None
    return sum(times)
