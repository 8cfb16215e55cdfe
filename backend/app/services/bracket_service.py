"""
Bracket Service - Knockout Seeding

Turns final group standings into the first knockout round:
- 1 group:   top 4 -> semis (1v4, 2v3)
- 2 groups:  top 2 of each -> crossed semis (A1vB2, B1vA2)
- 4 groups:  top 2 of each -> quarters, seeded in blocks of four

Knockout rows are reconciled, not appended: existing rows are kept when
their participants are still right, rewritten in place when they are not,
and anything the new seeding no longer feeds is removed.
"""

import logging
import re
from collections import OrderedDict
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from backend.app.models.enums import MatchRound, MatchStatus
from backend.app.models.match_model import Match
from backend.app.services.standings_service import (
    FALLBACK_GROUP,
    PlayerStats,
    sort_standings,
    standings_service,
)

logger = logging.getLogger(__name__)

Pair = Tuple[int, int]

QUARTERFINAL_FIELD = 8

# Rounds whose participants come from the results of the given round
DOWNSTREAM_ROUNDS = {
    MatchRound.QUARTER: (MatchRound.SEMI, MatchRound.FINAL, MatchRound.THIRD_PLACE),
    MatchRound.SEMI: (MatchRound.FINAL, MatchRound.THIRD_PLACE),
    MatchRound.FINAL: (),
    MatchRound.THIRD_PLACE: (),
}


# --- Round reconciliation (shared with the knockout service) ---

async def load_round(db: AsyncSession, tournament_id: int, round_label: str) -> List[Match]:
    result = await db.execute(
        select(Match)
        .where(Match.tournament_id == tournament_id, Match.round == str(round_label))
        .order_by(Match.id.asc())
    )
    return list(result.scalars().all())


async def delete_rounds(db: AsyncSession, tournament_id: int, rounds: Sequence[str]) -> int:
    if not rounds:
        return 0
    result = await db.execute(
        delete(Match).where(
            Match.tournament_id == tournament_id,
            Match.round.in_([str(r) for r in rounds]),
        )
    )
    return result.rowcount or 0


async def reconcile_round(
    db: AsyncSession,
    tournament_id: int,
    round_label: str,
    pairs: Sequence[Pair],
) -> bool:
    """
    Makes the rows of `round_label` match `pairs`, position by position.

    Rows with the right participants are left alone (results included).
    Rows with the wrong participants are rewritten and reset to scheduled.
    Missing rows are inserted, surplus rows deleted.
    Returns True if anything was written.
    """
    existing = await load_round(db, tournament_id, round_label)
    changed = False

    for position, (p1, p2) in enumerate(pairs):
        if position < len(existing):
            row = existing[position]
            if row.participants == (p1, p2):
                continue
            logger.info(
                f"Tournament {tournament_id}: {round_label} match {row.id} "
                f"re-paired {row.participants} -> {(p1, p2)}"
            )
            row.player1_id = p1
            row.player2_id = p2
            row.score1 = None
            row.score2 = None
            row.status = MatchStatus.SCHEDULED.value
        else:
            db.add(Match(
                tournament_id=tournament_id,
                player1_id=p1,
                player2_id=p2,
                round=str(round_label),
                status=MatchStatus.SCHEDULED.value,
            ))
        changed = True

    for row in existing[len(pairs):]:
        await db.delete(row)
        changed = True

    await db.flush()
    return changed


async def invalidate_downstream(db: AsyncSession, tournament_id: int, round_label: str) -> int:
    """Removes rounds that were filled from results of `round_label`."""
    removed = await delete_rounds(db, tournament_id, DOWNSTREAM_ROUNDS[MatchRound(round_label)])
    if removed:
        logger.info(f"Tournament {tournament_id}: cleared {removed} match(es) after {round_label} changed")
    return removed


# --- Seeding ---

def group_sort_key(label: str):
    """Natural order: 'GROUP 2' before 'GROUP 10'."""
    match = re.search(r"(\d+)$", label)
    if match:
        return (0, int(match.group(1)), label)
    return (1, 0, label)


def partition_by_group(standings: List[PlayerStats]) -> "OrderedDict[str, List[PlayerStats]]":
    """Qualifying players per group, groups in fixed order, each in tie-break order."""
    grouped: Dict[str, List[PlayerStats]] = {}
    for line in standings:
        if line.group == FALLBACK_GROUP:
            continue
        grouped.setdefault(line.group, []).append(line)

    return OrderedDict(
        (label, sort_standings(grouped[label]))
        for label in sorted(grouped, key=group_sort_key)
    )


def seed_knockout(grouped: "OrderedDict[str, List[PlayerStats]]") -> Optional[Tuple[str, List[Pair]]]:
    """
    Picks the first knockout round for the given groups.
    Returns (round, [(player1_id, player2_id), ...]) or None when the field
    does not reach the qualification threshold.
    """
    tables = list(grouped.values())

    if len(tables) == 0:
        return None

    if len(tables) == 1:
        top4 = tables[0][:4]
        if len(top4) < 4:
            return None
        return MatchRound.SEMI.value, [
            (top4[0].player_id, top4[3].player_id),
            (top4[1].player_id, top4[2].player_id),
        ]

    if len(tables) == 2:
        a, b = tables[0][:2], tables[1][:2]
        if len(a) < 2 or len(b) < 2:
            return None
        return MatchRound.SEMI.value, [
            (a[0].player_id, b[1].player_id),
            (b[0].player_id, a[1].player_id),
        ]

    pool: List[PlayerStats] = []
    for table in tables:
        top2 = table[:2]
        if len(top2) < 2:
            return None
        pool.extend(top2)

    if len(pool) != QUARTERFINAL_FIELD:
        return None

    pairs = []
    for start in range(0, len(pool), 4):
        block = pool[start:start + 4]
        pairs.append((block[0].player_id, block[3].player_id))
        pairs.append((block[1].player_id, block[2].player_id))
    return MatchRound.QUARTER.value, pairs


class BracketService:

    async def try_generate_knockout_matches(self, db: AsyncSession, tournament_id: int) -> bool:
        """
        Seeds the first knockout round once every group match is completed.
        Returns True if a knockout round is in place after the call.
        Never commits; the caller owns the transaction.
        """
        group_matches = await standings_service.get_group_matches(db, tournament_id)

        if not group_matches:
            logger.debug(f"Tournament {tournament_id}: no group matches, bracket not ready")
            return False

        pending = [m for m in group_matches if m.status != MatchStatus.COMPLETED]
        if pending:
            logger.debug(f"Tournament {tournament_id}: {len(pending)} group match(es) still to play")
            return False

        standings = await standings_service.compute_standings(db, tournament_id)
        plan = seed_knockout(partition_by_group(standings))
        if plan is None:
            logger.info(f"Tournament {tournament_id}: not enough qualifiers, no knockout round generated")
            return False

        round_label, pairs = plan

        # Seeding straight into semis leaves no place for quarterfinals
        stale = 0
        if round_label == MatchRound.SEMI:
            stale = await delete_rounds(db, tournament_id, [MatchRound.QUARTER])

        changed = await reconcile_round(db, tournament_id, round_label, pairs)
        if changed or stale:
            await invalidate_downstream(db, tournament_id, round_label)
            logger.info(f"Tournament {tournament_id}: seeded {len(pairs)} {round_label} match(es)")

        await db.flush()
        return True


bracket_service = BracketService()
