"""
Entity stores for the host collections (users, papers, degrees, ideas).

Stores work inside the caller's session. ``update_by_id`` is a partial
merge: only the supplied fields change.
"""

import uuid
from typing import Any, Dict, Generic, Iterable, Optional, Type, TypeVar

from pydantic_core import to_jsonable_python
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from eduscope.kernel.models.base import Base
from eduscope.kernel.models.degree import Degree, Idea
from eduscope.kernel.models.research_paper import ResearchPaper
from eduscope.kernel.models.user import User

ModelT = TypeVar("ModelT", bound=Base)


class EntityStore(Generic[ModelT]):
    """Find, partially update and delete rows of one model by id."""

    model: Type[ModelT]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_id(self, entity_id: uuid.UUID) -> Optional[ModelT]:
        query = (
            select(self.model)
            .where(self.model.id == entity_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def update_by_id(
        self,
        entity_id: uuid.UUID,
        fields: Dict[str, Any],
    ) -> Optional[ModelT]:
        """
        Merge ``fields`` into the entity.

        Returns:
            The refreshed entity, or None if it does not exist
        """
        if not fields:
            return await self.find_by_id(entity_id)

        unknown = set(fields) - set(self.model.__table__.columns.keys())
        if unknown:
            raise ValueError(f"Unknown {self.model.__name__} fields: {sorted(unknown)}")

        stmt = (
            update(self.model)
            .where(self.model.id == entity_id)
            .values(**fields)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount == 0:
            return None
        return await self.find_by_id(entity_id)

    async def delete_by_id(self, entity_id: uuid.UUID) -> bool:
        """Returns False if there was nothing to delete."""
        stmt = (
            delete(self.model)
            .where(self.model.id == entity_id)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    @staticmethod
    def snapshot(entity: Optional[Base], fields: Iterable[str]) -> Optional[Dict[str, Any]]:
        """JSON-safe copy of selected fields, for audit before/after values."""
        if entity is None:
            return None
        return {
            name: to_jsonable_python(getattr(entity, name, None))
            for name in sorted(fields)
        }


class UserStore(EntityStore[User]):
    model = User

    async def find_by_email(self, email: str) -> Optional[User]:
        query = select(User).where(User.email == email.lower().strip())
        result = await self.session.execute(query)
        return result.scalar_one_or_none()


class ResearchPaperStore(EntityStore[ResearchPaper]):
    model = ResearchPaper


class DegreeStore(EntityStore[Degree]):
    model = Degree

    async def find_active(self, degree_id: uuid.UUID) -> Optional[Degree]:
        degree = await self.find_by_id(degree_id)
        if degree is None or not degree.is_active:
            return None
        return degree


class IdeaStore(EntityStore[Idea]):
    model = Idea
