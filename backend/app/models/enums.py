from enum import StrEnum


class TournamentStatus(StrEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class MatchStatus(StrEnum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"


class MatchRound(StrEnum):
    GROUP = "group"  # legacy single-group label
    QUARTER = "quarter"
    SEMI = "semi"
    FINAL = "final"
    THIRD_PLACE = "third-place"


GROUP_ROUND_PREFIX = "group-"

KNOCKOUT_ROUNDS = (
    MatchRound.QUARTER,
    MatchRound.SEMI,
    MatchRound.FINAL,
    MatchRound.THIRD_PLACE,
)


def group_round(index: int) -> str:
    """Round label for the 1-based group number, e.g. 'group-2'."""
    return f"{GROUP_ROUND_PREFIX}{index}"


def is_group_round(round_label: str) -> bool:
    if not round_label:
        return False
    return round_label == MatchRound.GROUP or round_label.startswith(GROUP_ROUND_PREFIX)
