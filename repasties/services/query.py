"""
Repasties — Snippet Query Builder
==================================

What:  An immutable value type that accumulates query stages and compiles
       them into one SQLAlchemy SELECT evaluated by the database server.
How:   filter() / pluck() / order_by() / limit() each return a new
       SnippetQuery. compile() applies the stages in a fixed order no matter
       the order they were added in:

           1. filter    WHERE field = value [AND ...]
           2. project   SELECT only the plucked columns
           3. order     ORDER BY ..., then the tie-break column ascending
           4. limit     LIMIT n

Example:
    query = (
        SnippetQuery()
        .filter(lang="ruby")
        .pluck("id", "title", "created_at")
        .order_by("created_at", descending=True)
        .limit(10)
    )
    stmt = query.compile(snippets_table)

Rows with equal sort keys come back ordered by `id` ascending.
"""

from dataclasses import dataclass, replace
from typing import Any, Optional, Tuple

from sqlalchemy import Column, Select, Table, select


@dataclass(frozen=True)
class FilterStage:
    """Exact-equality predicates, ANDed together."""
    equals: Tuple[Tuple[str, Any], ...]


@dataclass(frozen=True)
class ProjectStage:
    fields: Tuple[str, ...]


@dataclass(frozen=True)
class OrderStage:
    field: str
    descending: bool = False


@dataclass(frozen=True)
class SnippetQuery:
    """Composable description of one server-side query over a table."""

    filters: Tuple[FilterStage, ...] = ()
    projection: Optional[ProjectStage] = None
    ordering: Tuple[OrderStage, ...] = ()
    max_results: Optional[int] = None
    tie_break: Optional[str] = "id"

    # ── Stage builders ────────────────────────────────────────────────────

    def filter(self, **equals: Any) -> "SnippetQuery":
        if not equals:
            raise ValueError("filter() needs at least one field=value pair")
        stage = FilterStage(equals=tuple(sorted(equals.items())))
        return replace(self, filters=self.filters + (stage,))

    def pluck(self, *fields: str) -> "SnippetQuery":
        if not fields:
            raise ValueError("pluck() needs at least one field")
        return replace(self, projection=ProjectStage(fields=tuple(fields)))

    def order_by(self, field: str, descending: bool = False) -> "SnippetQuery":
        stage = OrderStage(field=field, descending=descending)
        return replace(self, ordering=self.ordering + (stage,))

    def limit(self, count: int) -> "SnippetQuery":
        if count < 1:
            raise ValueError(f"limit must be positive, got {count}")
        return replace(self, max_results=count)

    # ── Compilation ───────────────────────────────────────────────────────

    def compile(self, table: Table) -> Select:
        """
        Build the SELECT for `table`.

        Raises:
            ValueError: a stage names a column the table does not have.
        """
        if self.projection is not None:
            stmt = select(*(_column(table, name) for name in self.projection.fields))
        else:
            stmt = select(table)

        for stage in self.filters:
            for name, value in stage.equals:
                stmt = stmt.where(_column(table, name) == value)

        ordered = set()
        for stage in self.ordering:
            column = _column(table, stage.field)
            stmt = stmt.order_by(column.desc() if stage.descending else column.asc())
            ordered.add(stage.field)

        if self.ordering and self.tie_break and self.tie_break not in ordered:
            stmt = stmt.order_by(_column(table, self.tie_break).asc())

        if self.max_results is not None:
            stmt = stmt.limit(self.max_results)

        return stmt


def _column(table: Table, name: str) -> Column:
    if name not in table.c:
        raise ValueError(f"Unknown field '{name}' for table '{table.name}'")
    return table.c[name]
