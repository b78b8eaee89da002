"""
Database CLI Commands

Database operations: init
"""
import asyncio

from award_backend.cli.base import CommandBase
from award_backend.orm.base import Base


class DbCommand(CommandBase):
    """Database CLI command handler."""

    def execute(self, args) -> int:
        """Execute database command."""
        if args.db_action == "init":
            return self._init(args)
        print("Error: Unknown database action")
        return 1

    def _init(self, args) -> int:
        """Create any missing tables."""
        print("=== Database Init ===")
        tables = sorted(Base.metadata.tables)

        if self.dry_run:
            print(f"[DRY RUN] Would create missing tables: {', '.join(tables)}")
            return 0

        asyncio.run(self._create_all())
        print(f"✓ Tables ready: {', '.join(tables)}")
        return 0

    async def _create_all(self) -> None:
        async with self.engine() as engine:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
