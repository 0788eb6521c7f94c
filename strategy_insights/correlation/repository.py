"""Read-only access to platform entities for the correlation analyzers."""

import asyncio
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any, Protocol, TypeVar, runtime_checkable

import asyncpg
import pydantic
import structlog

from strategy_insights.correlation.entities import (
    Cluster,
    Initiative,
    Issue,
    Milestone,
    User,
)
from strategy_insights.database import Database
from strategy_insights.errors import ComputationError, DataAccessError

logger = structlog.get_logger()

T = TypeVar("T")


@runtime_checkable
class EntityRepository(Protocol):
    """Queries the analyzers need from the platform store."""

    async def get_initiative(self, initiative_id: str) -> Initiative | None:
        """Initiative with owner, milestones and addressed issue ids."""
        ...

    async def get_cluster(self, cluster_id: str) -> Cluster | None:
        """Cluster with its issues and the initiatives addressing it."""
        ...

    async def get_milestone(self, milestone_id: str) -> Milestone | None:
        ...

    async def find_issues_created_between(
        self, start: datetime, end: datetime
    ) -> list[Issue]:
        ...

    async def find_initiatives_by_owner(
        self,
        owner_id: str,
        exclude_id: str | None = None,
        statuses: Sequence[str] | None = None,
    ) -> list[Initiative]:
        ...


_INITIATIVE_COLUMNS = """
    i.id, i.title, i.status, i.progress,
    i."ownerId" AS owner_id, i."clusterId" AS cluster_id,
    i."createdAt" AS created_at, i."updatedAt" AS updated_at,
    u.name AS owner_name, u.email AS owner_email, u.role AS owner_role
"""

_ISSUE_COLUMNS = """
    id, description, "heatmapScore" AS heatmap_score, votes,
    department, category, "clusterId" AS cluster_id, "createdAt" AS created_at
"""

_MILESTONE_COLUMNS = """
    id, title, status, "dueDate" AS due_date, progress,
    "initiativeId" AS initiative_id
"""


class PostgresEntityRepository:
    """EntityRepository over the platform's PostgreSQL tables."""

    # Prisma implicit many-to-many table: A = Initiative.id, B = Issue.id
    ADDRESSED_ISSUES_TABLE = '"_InitiativeToIssue"'

    def __init__(self, db: Database):
        self.db = db

    async def get_initiative(self, initiative_id: str) -> Initiative | None:
        """Get an initiative with its owner, milestones and addressed issues."""
        row = await self._fetchrow(
            f"""
            SELECT {_INITIATIVE_COLUMNS}
            FROM "Initiative" i
            LEFT JOIN "User" u ON u.id = i."ownerId"
            WHERE i.id = $1
            """,
            initiative_id,
        )
        if row is None:
            return None

        milestone_rows = await self._fetch(
            f"""
            SELECT {_MILESTONE_COLUMNS}
            FROM "Milestone"
            WHERE "initiativeId" = $1
            ORDER BY "dueDate" ASC
            """,
            initiative_id,
        )
        issue_rows = await self._fetch(
            f'SELECT "B" AS issue_id FROM {self.ADDRESSED_ISSUES_TABLE} WHERE "A" = $1',
            initiative_id,
        )

        return self._map_row(
            row,
            self._row_to_initiative,
            "initiative",
            milestones=self._map_rows(milestone_rows, self._row_to_milestone, "milestone"),
            addressed_issue_ids=[r["issue_id"] for r in issue_rows],
        )

    async def get_cluster(self, cluster_id: str) -> Cluster | None:
        """Get a cluster with its issues and addressing initiatives."""
        row = await self._fetchrow(
            'SELECT id, name, severity FROM "IssueCluster" WHERE id = $1',
            cluster_id,
        )
        if row is None:
            return None

        issue_rows = await self._fetch(
            f"""
            SELECT {_ISSUE_COLUMNS}
            FROM "Issue"
            WHERE "clusterId" = $1
            ORDER BY "createdAt" ASC
            """,
            cluster_id,
        )
        initiative_rows = await self._fetch(
            f"""
            SELECT {_INITIATIVE_COLUMNS}
            FROM "Initiative" i
            LEFT JOIN "User" u ON u.id = i."ownerId"
            WHERE i."clusterId" = $1
            ORDER BY i."createdAt" ASC
            """,
            cluster_id,
        )

        return self._map_row(
            row,
            self._row_to_cluster,
            "cluster",
            issues=self._map_rows(issue_rows, self._row_to_issue, "issue"),
            initiatives=self._map_rows(initiative_rows, self._row_to_initiative, "initiative"),
        )

    async def get_milestone(self, milestone_id: str) -> Milestone | None:
        """Get a milestone by ID."""
        row = await self._fetchrow(
            f'SELECT {_MILESTONE_COLUMNS} FROM "Milestone" WHERE id = $1',
            milestone_id,
        )
        if row is None:
            return None
        return self._map_row(row, self._row_to_milestone, "milestone")

    async def find_issues_created_between(
        self, start: datetime, end: datetime
    ) -> list[Issue]:
        """Find issues created inside [start, end]."""
        rows = await self._fetch(
            f"""
            SELECT {_ISSUE_COLUMNS}
            FROM "Issue"
            WHERE "createdAt" >= $1 AND "createdAt" <= $2
            ORDER BY "createdAt" ASC
            """,
            start,
            end,
        )
        return self._map_rows(rows, self._row_to_issue, "issue")

    async def find_initiatives_by_owner(
        self,
        owner_id: str,
        exclude_id: str | None = None,
        statuses: Sequence[str] | None = None,
    ) -> list[Initiative]:
        """Find initiatives owned by a user, optionally excluding one and filtering by status."""
        conditions = ['i."ownerId" = $1']
        params: list[Any] = [owner_id]

        if exclude_id:
            conditions.append(f"i.id <> ${len(params) + 1}")
            params.append(exclude_id)

        if statuses:
            conditions.append(f"i.status = ANY(${len(params) + 1})")
            params.append(list(statuses))

        where_clause = " AND ".join(conditions)
        rows = await self._fetch(
            f"""
            SELECT {_INITIATIVE_COLUMNS}
            FROM "Initiative" i
            LEFT JOIN "User" u ON u.id = i."ownerId"
            WHERE {where_clause}
            ORDER BY i.id ASC
            """,
            *params,
        )
        return self._map_rows(rows, self._row_to_initiative, "initiative")

    # ========================================================================
    # Helpers
    # ========================================================================

    async def _fetch(self, query: str, *args: Any) -> list[Any]:
        try:
            return await self.db.fetch(query, *args)
        except (
            asyncpg.PostgresError,
            asyncpg.InterfaceError,
            OSError,
            RuntimeError,
            asyncio.TimeoutError,
        ) as e:
            logger.warning("Repository query failed", error=str(e))
            raise DataAccessError(f"Repository query failed: {e}", source="postgres") from e

    async def _fetchrow(self, query: str, *args: Any) -> Any | None:
        try:
            return await self.db.fetchrow(query, *args)
        except (
            asyncpg.PostgresError,
            asyncpg.InterfaceError,
            OSError,
            RuntimeError,
            asyncio.TimeoutError,
        ) as e:
            logger.warning("Repository query failed", error=str(e))
            raise DataAccessError(f"Repository query failed: {e}", source="postgres") from e

    def _map_row(self, row, mapper: Callable[..., T], kind: str, **extra: Any) -> T:
        """Map the row a lookup asked for; a malformed one cannot be analyzed."""
        try:
            return mapper(row, **extra)
        except pydantic.ValidationError as e:
            raise ComputationError(f"Malformed {kind} row {row['id']}: {e}") from e

    def _map_rows(self, rows, mapper: Callable[..., T], kind: str) -> list[T]:
        """Map related rows, skipping any that fail validation."""
        mapped = []
        for row in rows:
            try:
                mapped.append(mapper(row))
            except pydantic.ValidationError as e:
                logger.warning(
                    "Skipping malformed row",
                    kind=kind,
                    id=row["id"],
                    errors=e.error_count(),
                )
        return mapped

    def _row_to_cluster(
        self,
        row,
        issues: list[Issue] | None = None,
        initiatives: list[Initiative] | None = None,
    ) -> Cluster:
        return Cluster(
            id=row["id"],
            name=row["name"],
            severity=row["severity"],
            issues=issues or [],
            initiatives=initiatives or [],
        )

    def _row_to_issue(self, row) -> Issue:
        """Convert database row to Issue."""
        return Issue(
            id=row["id"],
            description=row["description"] or "",
            heatmap_score=row["heatmap_score"] or 0.0,
            votes=row["votes"] or 0,
            department=row["department"],
            category=row["category"],
            cluster_id=row["cluster_id"],
            created_at=row["created_at"],
        )

    def _row_to_milestone(self, row) -> Milestone:
        """Convert database row to Milestone."""
        return Milestone(
            id=row["id"],
            title=row["title"],
            status=row["status"],
            due_date=row["due_date"],
            progress=row["progress"] or 0.0,
            initiative_id=row["initiative_id"],
        )

    def _row_to_initiative(
        self,
        row,
        milestones: list[Milestone] | None = None,
        addressed_issue_ids: list[str] | None = None,
    ) -> Initiative:
        """Convert database row (joined with its owner) to Initiative."""
        owner = None
        if row["owner_id"] and row["owner_name"]:
            owner = User(
                id=row["owner_id"],
                name=row["owner_name"],
                email=row["owner_email"],
                role=row["owner_role"],
            )
        return Initiative(
            id=row["id"],
            title=row["title"],
            status=row["status"],
            progress=row["progress"],
            owner_id=row["owner_id"],
            owner=owner,
            cluster_id=row["cluster_id"],
            milestones=milestones or [],
            addressed_issue_ids=addressed_issue_ids or [],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
