"""Apply generated migrations to a database.

Renders the statements for a change list and hands them to the client's
transactional ``execute_batch()``. Applying is guarded twice: ``dry_run``
defaults to True, and a real run additionally needs ``confirm=True``.

Usage:
    from surql_sync.schema.apply import apply_migration, plan_migration
    from surql_sync.schema.comparator import compare_schemas

    changes = compare_schemas(code_schema, db_schema, SyncDirection.PUSH)
    plan = plan_migration(changes, code_schema, db_schema)

    result = await apply_migration(client, plan, dry_run=False, confirm=True)
    if not result.success:
        print(result.error)
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from surql_sync.schema.migration import generate_migration_statements
from surql_sync.schema.models import Change, SchemaAST

if TYPE_CHECKING:
    from surql_sync.adapters.base import SchemaClient

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Migration data classes
# ------------------------------------------------------------------


@dataclass
class MigrationPlan:
    """Statements to run for a change list.

    Attributes:
        changes: The changes the plan was built from.
        statements: Rendered DDL, one entry per change that renders.
        skipped: Changes that produced no statement (unlocatable
            definitions, search/vector indexes).
    """

    changes: list[Change] = field(default_factory=list)
    statements: list[str] = field(default_factory=list)
    skipped: list[Change] = field(default_factory=list)

    @property
    def has_statements(self) -> bool:
        return bool(self.statements)

    def to_script(self) -> str:
        return "\n".join(self.statements) + ("\n" if self.statements else "")


class ApplyResult(BaseModel):
    """Result of applying a migration.

    Attributes:
        success: True if all statements were applied (or would be, for a
            dry run).
        dry_run: True if nothing was executed.
        statements_applied: Number of statements executed or planned.
        statements: The statements in execution order.
        error: Error message if applying failed.
    """

    success: bool = False
    dry_run: bool = True
    statements_applied: int = 0
    statements: list[str] = Field(default_factory=list)
    error: str | None = None


def plan_migration(changes: list[Change], source: SchemaAST, target: SchemaAST) -> MigrationPlan:
    """Render every change and keep track of the ones that render nothing."""
    plan = MigrationPlan(changes=list(changes))
    for change in changes:
        statements = generate_migration_statements([change], source, target)
        if statements:
            plan.statements.extend(statements)
        else:
            plan.skipped.append(change)
    return plan


async def apply_migration(
    client: "SchemaClient",
    plan: MigrationPlan,
    dry_run: bool = True,
    confirm: bool = False,
) -> ApplyResult:
    """Apply a migration plan in a single transaction.

    Args:
        client: Database client implementing ``SchemaClient``.
        plan: Plan from ``plan_migration()``.
        dry_run: If True, only report what would be done without executing.
        confirm: Must be True to actually apply statements (safety guard).

    Returns:
        ``ApplyResult`` with outcome. Failures are reported through
        ``error``; nothing is raised for a failed statement.

    Example:
        result = await apply_migration(client, plan, dry_run=False, confirm=True)
        if result.success:
            print(f"Applied {result.statements_applied} statements")
    """
    result = ApplyResult(dry_run=dry_run, statements=list(plan.statements))

    if not plan.has_statements:
        result.success = True
        return result

    if dry_run:
        result.success = True
        result.statements_applied = len(plan.statements)
        return result

    if not confirm:
        result.error = "Migration requires confirm=True"
        return result

    try:
        await client.execute_batch(plan.statements)
    except Exception as e:
        logger.error(f"Migration failed, transaction rolled back: {e}")
        result.error = f"Failed to apply migration: {e}"
        return result

    logger.info(f"Applied {len(plan.statements)} migration statements")
    result.success = True
    result.statements_applied = len(plan.statements)
    return result
