"""
Progression Service

Runs the counter -> evaluator -> certificate issuer chain for one school and
owns the per-school unit of work around it.

Concurrency model:
- one asyncio.Lock per school id serialises re-evaluation inside a process
- the School row is read with SELECT ... FOR UPDATE where the backend supports it
- the School ``version`` column turns any remaining lost update into ConflictError
Different schools never contend.
"""
import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from award_backend.config.feature_flags import FeatureFlags
from award_backend.errors import new_log_id
from award_backend.exceptions import (
    AwardEngineError, ConflictError, PersistenceFailure, SchoolNotFoundError
)
from award_backend.orm.certificate import Certificate
from award_backend.orm.school import School
from award_backend.services import progression_store as store
from award_backend.services.certificate_service import issue_completion_certificate
from award_backend.services.evidence_counter import EvidenceCounts, count_evidence
from award_backend.services.notification_service import NotificationDispatcher
from award_backend.services.progression_evaluator import (
    ProgressionOutcome, SchoolProgressState, evaluate_progression
)

logger = logging.getLogger(__name__)

# Per-school locks for serializing progression updates; an entry lives only
# while some unit of work holds or waits on it
_school_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()
_lock_lock = asyncio.Lock()


async def _get_school_lock(school_id: str) -> asyncio.Lock:
    """Get or create the lock for a specific school."""
    async with _lock_lock:
        lock = _school_locks.get(school_id)
        if lock is None:
            lock = asyncio.Lock()
            _school_locks[school_id] = lock
        return lock


@asynccontextmanager
async def school_unit_of_work(db: AsyncSession, school_id: str):
    """
    Serialize a read-evaluate-write sequence for one school and commit it.

    Everything done inside the block is committed on exit or rolled back on
    error. StaleDataError becomes ConflictError; any other SQLAlchemy error
    becomes PersistenceFailure carrying a log id.
    """
    lock = await _get_school_lock(school_id)
    async with lock:
        try:
            yield
            await db.commit()
        except StaleDataError:
            await db.rollback()
            logger.warning(f"[PROGRESSION] lost update race for school={school_id}")
            raise ConflictError(school_id)
        except AwardEngineError:
            await db.rollback()
            raise
        except SQLAlchemyError as e:
            await db.rollback()
            log_id = new_log_id()
            logger.error(f"[PROGRESSION] persistence failure log_id={log_id} school={school_id}: {str(e)}")
            raise PersistenceFailure(log_id=log_id)
        except Exception:
            await db.rollback()
            raise


@dataclass
class ProgressionResult:
    """What one evaluation pass did to a school."""
    school: School
    counts: EvidenceCounts
    outcome: ProgressionOutcome
    certificate: Optional[Certificate] = None
    certificate_issued: bool = False

    @property
    def changed(self) -> bool:
        return self.outcome.changed or self.certificate_issued

    def to_dict(self) -> Dict[str, Any]:
        return {
            "school_id": self.school.id,
            "changed": self.changed,
            "updates": dict(self.outcome.updates),
            "stages_completed": list(self.outcome.stages_completed),
            "certificate_number": self.certificate.certificate_number if self.certificate_issued else None,
            "counts": self.counts.to_dict(),
        }


async def load_counts(db: AsyncSession, school: School) -> EvidenceCounts:
    """Evidence Counter input gathered from the store."""
    evidence_rows = await store.list_evidence_for_school(db, school.id)
    round_scoped = FeatureFlags.FEATURE_ROUND_SCOPED_AUDIT
    approved_audit = await store.find_latest_approved_audit(
        db, school.id, round_number=school.current_round if round_scoped else None
    )
    return count_evidence(
        school.current_round,
        evidence_rows,
        approved_audit=approved_audit,
        round_scoped_audit=round_scoped,
    )


async def evaluate_school(db: AsyncSession, school: School) -> ProgressionResult:
    """
    Recount, evaluate and apply the resulting update to a loaded school.

    Must run inside ``school_unit_of_work``; flushes but does not commit.
    """
    counts = await load_counts(db, school)
    state = SchoolProgressState.from_school(school)
    outcome = evaluate_progression(
        state,
        counts,
        certificate_every_round=FeatureFlags.FEATURE_CERTIFICATE_EVERY_ROUND,
    )
    result = ProgressionResult(school=school, counts=counts, outcome=outcome)

    if not outcome.changed:
        logger.debug(f"[PROGRESSION] school={school.id} no change")
        return result

    store.update_school(school, outcome.updates)
    # School update lands before the certificate savepoint
    await db.flush()

    for stage in outcome.stages_completed:
        logger.info(
            f"[PROGRESSION] school={school.id} round={state.current_round} completed {stage}"
        )
    if outcome.award_just_completed:
        logger.info(
            f"[PROGRESSION] school={school.id} award completed, "
            f"rounds_completed={school.rounds_completed}"
        )

    if outcome.certificate_due:
        certificate, is_new = await issue_completion_certificate(
            db,
            school,
            counts,
            state.current_round,
            per_round=FeatureFlags.FEATURE_CERTIFICATE_EVERY_ROUND,
        )
        result.certificate = certificate
        result.certificate_issued = is_new

    return result


def announce_award(dispatcher: Optional[NotificationDispatcher], result: ProgressionResult) -> None:
    """Queue the award-completed event once the unit of work is committed."""
    if dispatcher is None or not result.outcome.award_just_completed:
        return
    dispatcher.dispatch(
        "notify_award_completed",
        result.school,
        result.certificate if result.certificate_issued else None,
    )


async def get_evidence_counts(db: AsyncSession, school_id: str) -> EvidenceCounts:
    """Read-only counts for the school's live round."""
    school = await store.find_school(db, school_id)
    if not school:
        raise SchoolNotFoundError(school_id)
    return await load_counts(db, school)


async def check_and_update_progression(
    db: AsyncSession,
    school_id: str,
    dispatcher: Optional[NotificationDispatcher] = None
) -> ProgressionResult:
    """Re-evaluate one school on demand, as its own unit of work."""
    async with school_unit_of_work(db, school_id):
        school = await store.find_school(db, school_id, for_update=True)
        if not school:
            raise SchoolNotFoundError(school_id)
        result = await evaluate_school(db, school)

    announce_award(dispatcher, result)
    return result


async def recalculate_all_progress(
    db: AsyncSession,
    dispatcher: Optional[NotificationDispatcher] = None
) -> Dict[str, int]:
    """
    Re-evaluate every school. One school's failure never stops the sweep.

    Returns:
        {"checked": n, "updated": n, "failed": n}
    """
    result = await db.execute(select(School.id).order_by(School.created_at))
    school_ids = [row[0] for row in result.all()]

    summary = {"checked": 0, "updated": 0, "failed": 0}
    for school_id in school_ids:
        summary["checked"] += 1
        try:
            progression = await check_and_update_progression(db, school_id, dispatcher)
        except AwardEngineError as e:
            summary["failed"] += 1
            logger.error(f"[PROGRESSION] recalculation failed for school={school_id}: {e.code} {e.message}")
            continue
        if progression.changed:
            summary["updated"] += 1

    logger.info(
        f"[PROGRESSION] recalculated {summary['checked']} schools: "
        f"{summary['updated']} updated, {summary['failed']} failed"
    )
    return summary
