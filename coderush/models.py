from dataclasses import asdict, dataclass, field
from typing import Optional

TIERS = ("easy", "medium", "hard")


def empty_solved() -> dict[str, bool]:
    return {tier: False for tier in TIERS}


@dataclass
class User:
    """Progress object persisted on the client between requests."""

    id: int
    name: str
    solved: dict[str, bool] = field(default_factory=empty_solved)
    active_problem: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "User":
        solved = empty_solved()
        for tier in TIERS:
            solved[tier] = bool((data.get("solved") or {}).get(tier, False))
        return cls(
            id=int(data["id"]),
            name=str(data["name"]),
            solved=solved,
            active_problem=data.get("active_problem"),
        )


@dataclass(frozen=True)
class Problem:
    id: str
    level: str
    title: str
    description: str
    route: str


@dataclass
class LeaderboardEntry:
    rank: int
    username: str
    solved: int
    total_time_ms: Optional[int]
