"""Best-effort cleanup before a restore.

Drops existing objects in the target schemas so a dump can be replayed
onto a database that already holds an older copy.  Per schema the order is:

    tables -> views (incl. materialized) -> sequences -> functions

Every drop is ``DROP ... IF EXISTS ... CASCADE``: dependent objects
(indexes, defaults, triggers, views over a table) go with their owner, and
a target that an earlier cascade already removed is a harmless no-op.

Cleanup is not transactional.  A failed drop is logged, reported as a
``warning`` progress event and skipped; partial cleanup is an accepted
outcome and never fails the restore.

Usage:
    from pgvault.backup.cleanup import CleanupPlanner

    planner = CleanupPlanner(conn)
    plan = await planner.plan(["public"])
    result = await planner.execute(plan, reporter)
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from pgvault.adapters.base import SqlConnection
from pgvault.backup.models import CleanupResult
from pgvault.errors import IntrospectionError
from pgvault.progress import ProgressReporter
from pgvault.schema.introspector import CatalogIntrospector
from pgvault.schema.models import qualified

logger = logging.getLogger(__name__)

_ROUTINE_KINDS = {"f": "FUNCTION", "w": "FUNCTION", "p": "PROCEDURE", "a": "AGGREGATE"}


@dataclass
class DropTarget:
    """A single object to drop.

    Example:
        target = DropTarget("public", "FUNCTION", "add", "integer, integer")
        target.to_sql()
        # 'DROP FUNCTION IF EXISTS "public"."add"(integer, integer) CASCADE;'
    """

    schema: str
    kind: str
    name: str
    signature: str | None = None  # identity arguments, routines only

    @property
    def label(self) -> str:
        base = f"{self.schema}.{self.name}"
        return f"{base}({self.signature})" if self.signature is not None else base

    def to_sql(self) -> str:
        target = qualified(self.schema, self.name)
        if self.signature is not None:
            target += f"({self.signature})"
        return f"DROP {self.kind} IF EXISTS {target} CASCADE;"


@dataclass
class CleanupPlan:
    """Ordered drop targets for one or more schemas."""

    schemas: list[str] = field(default_factory=list)
    targets: list[DropTarget] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.targets)

    def is_empty(self) -> bool:
        return not self.targets


class CleanupPlanner:
    """Plans and executes best-effort drops against one connection."""

    def __init__(self, conn: SqlConnection) -> None:
        self._conn = conn
        self._introspector = CatalogIntrospector(conn)

    async def plan(
        self,
        schemas: Sequence[str] | None = None,
        reporter: ProgressReporter | None = None,
    ) -> CleanupPlan:
        """Enumerate drop targets.

        Args:
            schemas: Schemas to clean.  ``None`` means every non-system schema.
            reporter: Optional reporter for an enumeration-failure warning.

        Returns:
            The plan.  If catalog enumeration fails the failure is logged and
            an empty plan is returned.
        """
        try:
            if schemas is None:
                schemas = await self._introspector.list_schemas()
            plan = CleanupPlan(schemas=list(schemas))
            for schema in plan.schemas:
                plan.targets.extend(await self._plan_schema(schema))
        except IntrospectionError as e:
            message = f"Could not enumerate objects for cleanup: {e}"
            logger.warning(f"[pgvault.cleanup] {message}")
            if reporter is not None:
                reporter.warning("cleaning", message)
            return CleanupPlan(schemas=list(schemas or []))

        logger.debug(f"[pgvault.cleanup] Planned {len(plan)} drop(s) in {len(plan.schemas)} schema(s)")
        return plan

    async def _plan_schema(self, schema: str) -> list[DropTarget]:
        intro = self._introspector
        targets = [
            DropTarget(schema, "TABLE", name)
            for name in await intro.list_relation_names(schema, ("r", "p"))
        ]
        targets += [
            DropTarget(schema, "VIEW", name)
            for name in await intro.list_relation_names(schema, ("v",))
        ]
        targets += [
            DropTarget(schema, "MATERIALIZED VIEW", name)
            for name in await intro.list_relation_names(schema, ("m",))
        ]
        targets += [
            DropTarget(schema, "SEQUENCE", name)
            for name in await intro.list_relation_names(schema, ("S",))
        ]
        targets += [
            DropTarget(schema, _ROUTINE_KINDS.get(kind, "FUNCTION"), name, args)
            for name, args, kind in await intro.list_function_signatures(schema)
        ]
        return targets

    async def execute(
        self, plan: CleanupPlan, reporter: ProgressReporter | None = None
    ) -> CleanupResult:
        """Run every drop in plan order, skipping over failures.

        Progress moves from 25 to 35 as targets are processed.
        """
        reporter = reporter or ProgressReporter()
        result = CleanupResult()
        total = len(plan)
        current_schema = None

        for i, target in enumerate(plan.targets):
            if target.schema != current_schema:
                current_schema = target.schema
                reporter.log(
                    "cleaning",
                    f"Cleaning schema {current_schema}...",
                    icon="🧹",
                    progress=25 + (10 * i) // total,
                )
            try:
                await self._conn.execute(target.to_sql())
            except Exception as e:
                message = f"Could not drop {target.kind.lower()} {target.label}: {e}"
                logger.warning(f"[pgvault.cleanup] {message}")
                reporter.warning("cleaning", message)
                result.failed += 1
                result.warnings.append(message)
            else:
                logger.debug(f"[pgvault.cleanup] Dropped {target.kind.lower()} {target.label}")
                result.dropped += 1

        return result
