"""Alembic integration for schema upgrades and status reporting.

The migration scripts ship inside the package, so the Alembic config is
built in code instead of being read from an alembic.ini.
"""

from __future__ import annotations

from dataclasses import dataclass

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy.ext.asyncio import AsyncEngine

SCRIPT_LOCATION = "clickstats.persistence:migrations"


@dataclass
class RevisionStatus:
    """One migration revision and whether the database has it."""

    revision: str
    description: str
    applied: bool


def alembic_config(database_url: str | None = None) -> Config:
    """Build an Alembic config pointing at the bundled migrations.

    Without a database_url the migration environment falls back to
    settings.database_url.
    """
    config = Config()
    config.set_main_option("script_location", SCRIPT_LOCATION)
    if database_url:
        config.set_main_option("sqlalchemy.url", database_url)
    return config


def upgrade(revision: str = "head", database_url: str | None = None) -> None:
    """Apply migrations up to revision."""
    command.upgrade(alembic_config(database_url), revision)


async def current_revision(engine: AsyncEngine) -> str | None:
    """Revision currently stamped in the database, or None when unmigrated."""
    async with engine.connect() as conn:
        return await conn.run_sync(
            lambda sync_conn: MigrationContext.configure(sync_conn).get_current_revision()
        )


def revision_status(current: str | None, database_url: str | None = None) -> list[RevisionStatus]:
    """All known revisions, oldest first, marked applied up to current."""
    script = ScriptDirectory.from_config(alembic_config(database_url))
    revisions = list(reversed(list(script.walk_revisions())))

    applied_ids: set[str] = set()
    if current is not None:
        applied_ids = {rev.revision for rev in script.walk_revisions("base", current)}

    return [
        RevisionStatus(
            revision=rev.revision,
            description=(rev.doc or "").strip(),
            applied=rev.revision in applied_ids,
        )
        for rev in revisions
    ]
