"""
Schema Manager

Brings the orders table to the current column layout when the store opens:

- FRESH: no table yet, create it with its indexes
- CURRENT: columns already match, nothing to do
- LEGACY: columns differ, rebuild the table through a shadow copy

The rebuild runs in a single transaction. Columns the old layout lacks are
backfilled from their server default (or NULL), columns the current layout
dropped are discarded, and the AUTOINCREMENT high-water mark is carried
over so ids are never handed out twice.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy.engine import Connection
from sqlalchemy.schema import CreateTable
from sqlalchemy.sql.elements import TextClause

from order_desk.core.database import Base
from order_desk.core.errors import MigrationError
from order_desk.models.order import Order

logger = logging.getLogger(__name__)


class SchemaState(str, enum.Enum):
    FRESH = "fresh"
    CURRENT = "current"
    LEGACY = "legacy"


@dataclass(frozen=True)
class SchemaPlan:
    """What the manager found and what a rebuild would change."""
    state: SchemaState
    added_columns: Tuple[str, ...] = ()
    removed_columns: Tuple[str, ...] = ()

    @property
    def requires_migration(self) -> bool:
        return self.state == SchemaState.LEGACY


def backfill_expression(column: sa.Column):
    """SQL expression supplying a value for a column the old layout lacks."""
    default = column.server_default
    if default is None:
        return sa.null()
    arg = default.arg
    if isinstance(arg, str):
        return sa.literal(arg)
    if isinstance(arg, TextClause):
        return sa.literal_column(arg.text)
    return arg


class SchemaManager:
    """Detects and applies layout changes for one table."""

    shadow_suffix = "__shadow"

    def __init__(self, store, table: Optional[sa.Table] = None):
        self.store = store
        self.table = table if table is not None else Order.__table__

    @property
    def shadow_name(self) -> str:
        return f"{self.table.name}{self.shadow_suffix}"

    def inspect(self) -> SchemaPlan:
        """Compare the stored layout with the current one without changing anything."""
        with self.store.connection(persist=False) as conn:
            return self._plan(conn)

    def apply(self) -> SchemaState:
        """
        Create or rebuild the table as needed.

        Returns:
            The state the table was found in

        Raises:
            MigrationError: If creation or rebuild fails. Nothing is kept.
        """
        try:
            with self.store.connection(persist=False) as conn:
                plan = self._plan(conn)
                if plan.state == SchemaState.FRESH:
                    Base.metadata.create_all(bind=conn, tables=[self.table])
                    logger.info(f"Created table {self.table.name}")
                elif plan.state == SchemaState.LEGACY:
                    logger.info(
                        f"Migrating table {self.table.name}: "
                        f"adding {list(plan.added_columns)}, dropping {list(plan.removed_columns)}"
                    )
                    copied = self._rebuild(conn)
                    logger.info(f"Migrated {copied} rows into the current {self.table.name} layout")
        except MigrationError:
            raise
        except Exception as e:
            logger.error(f"Schema migration of {self.table.name} failed, rolled back: {e}")
            raise MigrationError(f"Could not migrate table {self.table.name}: {e}") from e

        return plan.state

    # ========================================================================
    # PLANNING
    # ========================================================================

    def _plan(self, conn: Connection) -> SchemaPlan:
        inspector = sa.inspect(conn)
        if not inspector.has_table(self.table.name):
            return SchemaPlan(SchemaState.FRESH)

        existing = [c["name"] for c in inspector.get_columns(self.table.name)]
        wanted = [c.name for c in self.table.columns]
        added = tuple(name for name in wanted if name not in existing)
        removed = tuple(name for name in existing if name not in wanted)

        if not added and not removed:
            return SchemaPlan(SchemaState.CURRENT)
        return SchemaPlan(SchemaState.LEGACY, added, removed)

    # ========================================================================
    # REBUILD
    # ========================================================================

    def _rebuild(self, conn: Connection) -> int:
        ops = Operations(MigrationContext.configure(connection=conn))
        name = self.table.name

        old = sa.Table(name, sa.MetaData(), autoload_with=conn)
        high_water = self._high_water_mark(conn, old)

        shadow = self.table.to_metadata(sa.MetaData(), name=self.shadow_name)
        ops.execute(CreateTable(shadow))

        copied = self._copy_rows(conn, old, shadow)

        ops.drop_table(name)
        ops.rename_table(self.shadow_name, name)
        for index in self.table.indexes:
            ops.create_index(
                index.name,
                name,
                [column.name for column in index.columns],
                unique=index.unique,
            )

        self._restore_high_water_mark(conn, high_water)
        return copied

    def _copy_rows(self, conn: Connection, old: sa.Table, shadow: sa.Table) -> int:
        columns = []
        for column in shadow.columns:
            if column.name in old.c:
                columns.append(old.c[column.name])
            else:
                columns.append(backfill_expression(column).label(column.name))

        conn.execute(
            shadow.insert().from_select(
                [column.name for column in shadow.columns],
                sa.select(*columns),
            )
        )
        return conn.execute(sa.select(sa.func.count()).select_from(shadow)).scalar_one()

    def _high_water_mark(self, conn: Connection, old: sa.Table) -> int:
        mark = 0
        if "id" in old.c:
            mark = conn.execute(sa.select(sa.func.max(old.c.id))).scalar() or 0
        if self._has_sequence_table(conn):
            seq = conn.execute(
                sa.text("SELECT seq FROM sqlite_sequence WHERE name = :name"),
                {"name": self.table.name},
            ).scalar()
            mark = max(mark, seq or 0)
        return mark

    def _restore_high_water_mark(self, conn: Connection, mark: int) -> None:
        if not mark:
            return
        current = conn.execute(
            sa.text("SELECT seq FROM sqlite_sequence WHERE name = :name"),
            {"name": self.table.name},
        ).scalar()
        if current is None:
            conn.execute(
                sa.text("INSERT INTO sqlite_sequence (name, seq) VALUES (:name, :seq)"),
                {"name": self.table.name, "seq": mark},
            )
        elif current < mark:
            conn.execute(
                sa.text("UPDATE sqlite_sequence SET seq = :seq WHERE name = :name"),
                {"name": self.table.name, "seq": mark},
            )

    @staticmethod
    def _has_sequence_table(conn: Connection) -> bool:
        row = conn.execute(
            sa.text("SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'sqlite_sequence'")
        ).first()
        return row is not None
