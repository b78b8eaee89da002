"""
Round Manager

Moves a school that has completed the award into a fresh round, plus the
administrative repairs around round pointers.

Prior-round evidence, audits and certificates are never touched: the counter
scopes to ``current_round`` so a new round starts from zero on its own.
"""
import logging
from typing import Any, Dict, List

from sqlalchemy import select, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from award_backend.exceptions import (
    IneligibleError, InvalidProgressionUpdateError, SchoolNotFoundError
)
from award_backend.orm.school import School, ProgramStage
from award_backend.services import progression_store as store
from award_backend.services.progression_evaluator import progress_for
from award_backend.services.progression_service import school_unit_of_work

logger = logging.getLogger(__name__)

# School fields cleared when a round starts
ROUND_RESET = {
    "current_stage": ProgramStage.INSPIRE.value,
    "inspire_completed": False,
    "investigate_completed": False,
    "act_completed": False,
    "award_completed": False,
    "audit_quiz_completed": False,
    "progress_percentage": 0,
}

MANUAL_UPDATE_FIELDS = {
    "current_stage",
    "inspire_completed",
    "investigate_completed",
    "act_completed",
    "award_completed",
    "audit_quiz_completed",
    "current_round",
    "rounds_completed",
}


async def start_new_round(db: AsyncSession, school_id: str) -> School:
    """
    Advance a school with a completed award to its next round.

    Raises:
        SchoolNotFoundError: no such school
        IneligibleError: the award for the current round is not complete
    """
    async with school_unit_of_work(db, school_id):
        school = await store.find_school(db, school_id, for_update=True)
        if not school:
            raise SchoolNotFoundError(school_id)

        if not school.award_completed:
            raise IneligibleError(
                f"School {school_id} must complete round {school.current_round} "
                f"before starting a new one"
            )

        previous_round = school.current_round
        updates = dict(ROUND_RESET)
        updates["current_round"] = previous_round + 1
        store.update_school(school, updates)

    logger.info(f"[ROUND] school={school_id} started round {school.current_round} (was {previous_round})")
    return school


async def repair_stuck_schools(db: AsyncSession, dry_run: bool = False) -> List[Dict[str, Any]]:
    """
    Fix schools whose round pointer lags behind their completed rounds.

    A school is stuck when its current round is behind ``rounds_completed``,
    or equal to it while the award is not marked completed. A school that has
    just completed its award is waiting for ``start_new_round`` and is left
    alone. Stuck schools move to ``rounds_completed + 1`` with every flag reset.

    Returns:
        One ``{"school_id", "from_round", "to_round"}`` entry per repaired school
    """
    result = await db.execute(
        select(School.id).where(
            and_(
                School.rounds_completed > 0,
                or_(
                    School.current_round < School.rounds_completed,
                    and_(
                        School.current_round == School.rounds_completed,
                        School.award_completed.is_(False)
                    )
                )
            )
        )
    )
    school_ids = [row[0] for row in result.all()]

    repaired = []
    for school_id in school_ids:
        if dry_run:
            school = await store.find_school(db, school_id)
            repaired.append({
                "school_id": school_id,
                "from_round": school.current_round,
                "to_round": school.rounds_completed + 1,
            })
            continue

        async with school_unit_of_work(db, school_id):
            school = await store.find_school(db, school_id, for_update=True)
            from_round = school.current_round
            updates = dict(ROUND_RESET)
            updates["current_round"] = school.rounds_completed + 1
            store.update_school(school, updates)

        repaired.append({
            "school_id": school_id,
            "from_round": from_round,
            "to_round": school.current_round,
        })
        logger.info(f"[ROUND] repaired school={school_id}: round {from_round} -> {school.current_round}")

    logger.info(f"[ROUND] repair found {len(repaired)} stuck schools (dry_run={dry_run})")
    return repaired


def _validate_manual_updates(updates: Dict[str, Any]) -> Dict[str, Any]:
    unknown = set(updates) - MANUAL_UPDATE_FIELDS
    if unknown:
        raise InvalidProgressionUpdateError(
            f"Fields cannot be set manually: {', '.join(sorted(unknown))}"
        )

    cleaned = dict(updates)
    if "current_stage" in cleaned:
        try:
            cleaned["current_stage"] = ProgramStage(cleaned["current_stage"]).value
        except ValueError:
            raise InvalidProgressionUpdateError(f"Unknown stage '{cleaned['current_stage']}'")
    if "current_round" in cleaned and int(cleaned["current_round"]) < 1:
        raise InvalidProgressionUpdateError("current_round must be at least 1")
    if "rounds_completed" in cleaned and int(cleaned["rounds_completed"]) < 0:
        raise InvalidProgressionUpdateError("rounds_completed cannot be negative")
    return cleaned


async def manually_update_progression(
    db: AsyncSession,
    school_id: str,
    updates: Dict[str, Any]
) -> School:
    """
    Administrative correction of a school's stage, flags or round.

    Moving ``current_round`` backwards also pulls ``rounds_completed`` down to
    ``max(0, current_round - 1)``. ``progress_percentage`` is never taken from
    the caller; it is re-derived from the resulting flags.
    """
    cleaned = _validate_manual_updates(updates)

    async with school_unit_of_work(db, school_id):
        school = await store.find_school(db, school_id, for_update=True)
        if not school:
            raise SchoolNotFoundError(school_id)

        new_round = cleaned.get("current_round")
        if new_round is not None and new_round < school.current_round and "rounds_completed" not in cleaned:
            cleaned["rounds_completed"] = max(0, new_round - 1)

        store.update_school(school, cleaned)
        school.progress_percentage = progress_for(
            school.inspire_completed,
            school.investigate_completed,
            school.act_completed,
        )

    logger.info(f"[ROUND] manual progression update for school={school_id}: {cleaned}")
    return school
