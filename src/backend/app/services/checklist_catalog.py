"""Read-only lookups over checklist templates."""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.checklist import ChecklistElement


def element_sort_key(element: ChecklistElement) -> tuple[bool, int]:
    """Order by order_index, elements without an index last."""
    return (element.order_index is None, element.order_index or 0)


class ChecklistCatalog:
    """Checklist membership and ordering queries."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_element(
        self,
        checklist_id: uuid.UUID,
        element_id: uuid.UUID,
    ) -> ChecklistElement | None:
        """Get a checklist element only if it belongs to the given checklist."""
        result = await self.db.execute(
            select(ChecklistElement)
            .where(
                ChecklistElement.id == element_id,
                ChecklistElement.checklist_id == checklist_id,
            )
            .options(selectinload(ChecklistElement.element))
        )
        return result.scalar_one_or_none()

    async def element_in_checklist(self, checklist_id: uuid.UUID, element_id: uuid.UUID) -> bool:
        return await self.get_element(checklist_id, element_id) is not None

    async def ordered_elements(self, checklist_id: uuid.UUID) -> list[ChecklistElement]:
        """Elements of a checklist in display order."""
        result = await self.db.execute(
            select(ChecklistElement)
            .where(ChecklistElement.checklist_id == checklist_id)
            .options(selectinload(ChecklistElement.element))
        )
        return sorted(result.scalars().all(), key=element_sort_key)
