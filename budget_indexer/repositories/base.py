"""
Base repository.

Generic CRUD operations for all repositories.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from budget_indexer.config.constants import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from budget_indexer.models.base import Base

# Generic type for model
ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Base repository with generic CRUD operations.

    Provides async database operations for any SQLAlchemy model.
    Repositories never commit; the caller owns the transaction.

    Type Parameters:
        ModelType: SQLAlchemy model class

    Example:
        class BucketRepository(BaseRepository[Bucket]):
            def __init__(self, session: AsyncSession):
                super().__init__(Bucket, session)
    """

    def __init__(
        self, model: type[ModelType], session: AsyncSession
    ) -> None:
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            session: Async database session
        """
        self.model = model
        self.session = session

    async def get_by(self, **filters: Any) -> ModelType | None:
        """
        Get single entity by filters.

        Args:
            **filters: Column filters

        Returns:
            First matching entity or None
        """
        stmt = select(self.model).filter_by(**filters)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def count(self, **filters: Any) -> int:
        """
        Count entities matching filters.

        Args:
            **filters: Column filters

        Returns:
            Count of matching entities
        """
        stmt = select(func.count()).select_from(self.model)

        if filters:
            stmt = stmt.filter_by(**filters)

        result = await self.session.execute(stmt)
        return result.scalar() or 0

    def _insert(self):
        """
        Build a dialect-specific INSERT for the bound database.

        PostgreSQL and SQLite both support ON CONFLICT clauses, but through
        different insert constructs.
        """
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(self.model)
        if dialect == "sqlite":
            return sqlite.insert(self.model)
        raise NotImplementedError(f"Unsupported database dialect: {dialect}")

    async def insert_ignore(
        self, values: dict[str, Any], conflict_columns: list[str]
    ) -> bool:
        """
        Insert a row unless it conflicts on a unique key.

        Args:
            values: Column values
            conflict_columns: Columns of the unique constraint

        Returns:
            True if a row was inserted, False on conflict
        """
        stmt = (
            self._insert()
            .values(**values)
            .on_conflict_do_nothing(index_elements=conflict_columns)
            .returning(self.model.id)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def insert_ignore_many(
        self, rows: list[dict[str, Any]], conflict_columns: list[str]
    ) -> int:
        """
        Bulk variant of insert_ignore.

        Returns:
            Number of rows actually inserted
        """
        if not rows:
            return 0
        stmt = (
            self._insert()
            .values(rows)
            .on_conflict_do_nothing(index_elements=conflict_columns)
            .returning(self.model.id)
        )
        result = await self.session.execute(stmt)
        return len(result.scalars().all())

    async def find_page(
        self,
        *conditions: Any,
        order_by: tuple[Any, ...],
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
    ) -> list[ModelType]:
        """
        Find entities matching conditions, one page at a time.

        Args:
            *conditions: WHERE clauses
            order_by: ORDER BY clauses
            limit: Page size (capped at MAX_PAGE_LIMIT)
            offset: Rows to skip

        Returns:
            List of matching entities
        """
        limit = max(1, min(limit, MAX_PAGE_LIMIT))
        offset = max(0, offset)

        stmt = (
            select(self.model)
            .where(*conditions)
            .order_by(*order_by)
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
