"""
Progression CLI Commands

Progression maintenance: recalculate, repair-rounds, check
"""
import asyncio
import json

from sqlalchemy import select

from award_backend.exceptions import AwardEngineError
from award_backend.cli.base import CommandBase
from award_backend.orm.school import School
from award_backend.services import round_service
from award_backend.services.progression_evaluator import SchoolProgressState, evaluate_progression
from award_backend.services.progression_service import (
    check_and_update_progression, load_counts, recalculate_all_progress
)
from award_backend.config.feature_flags import FeatureFlags


class ProgressionCommand(CommandBase):
    """Progression CLI command handler."""

    def execute(self, args) -> int:
        """Execute progression command."""
        if args.progression_action == "recalculate":
            return self._recalculate(args)
        elif args.progression_action == "repair-rounds":
            return self._repair_rounds(args)
        elif args.progression_action == "check":
            return self._check(args)
        else:
            print("Error: Unknown progression action")
            return 1

    def _recalculate(self, args) -> int:
        print("=== Recalculate Progression ===")
        if self.dry_run:
            pending = asyncio.run(self._preview_all())
            print(f"[DRY RUN] {len(pending)} schools would change")
            for school_id, updates in pending:
                print(f"  {school_id}: {json.dumps(updates)}")
            return 0

        summary = asyncio.run(self._run_recalculate())
        print(
            f"Checked: {summary['checked']}  "
            f"Updated: {summary['updated']}  "
            f"Failed: {summary['failed']}"
        )
        return 0 if summary["failed"] == 0 else 1

    async def _run_recalculate(self):
        async with self.session() as db:
            return await recalculate_all_progress(db)

    async def _preview_all(self):
        """Evaluate every school without writing anything."""
        pending = []
        async with self.session() as db:
            result = await db.execute(select(School).order_by(School.created_at))
            for school in result.scalars().all():
                counts = await load_counts(db, school)
                outcome = evaluate_progression(
                    SchoolProgressState.from_school(school),
                    counts,
                    certificate_every_round=FeatureFlags.FEATURE_CERTIFICATE_EVERY_ROUND,
                )
                if outcome.changed:
                    pending.append((school.id, outcome.updates))
        return pending

    def _repair_rounds(self, args) -> int:
        print("=== Repair Stuck Rounds ===")
        repaired = asyncio.run(self._run_repair())

        prefix = "[DRY RUN] Would repair" if self.dry_run else "Repaired"
        print(f"{prefix} {len(repaired)} schools")
        for entry in repaired:
            print(f"  {entry['school_id']}: round {entry['from_round']} -> {entry['to_round']}")
        return 0

    async def _run_repair(self):
        async with self.session() as db:
            return await round_service.repair_stuck_schools(db, dry_run=self.dry_run)

    def _check(self, args) -> int:
        print(f"=== Check Progression: {args.school} ===")
        if self.dry_run:
            print("[DRY RUN] Would re-evaluate and persist changes for this school")
            return 0

        try:
            result = asyncio.run(self._run_check(args.school))
        except AwardEngineError as e:
            print(f"Error: {e.code}: {e.message}")
            return 1

        print(json.dumps(result, indent=2))
        return 0

    async def _run_check(self, school_id: str):
        async with self.session() as db:
            result = await check_and_update_progression(db, school_id)
            return result.to_dict()
