from typing import Dict, Iterable, List, Optional
from sqlalchemy import delete, exists, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import aliased
from app.models.activity.activity import Activity
from app.models.activity.activity_image import ActivityImage


class ActivityStore:
    """Activity and image persistence.

    Every write commits on its own. Calls are atomic one at a time but are
    never combined into a larger transaction; on failure the session is
    rolled back and the SQLAlchemy error is re-raised.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def create(self, record: Activity, images: Iterable[dict] = ()) -> int:
        try:
            self.db.add(record)
            await self.db.flush()
            for image in images:
                self.db.add(ActivityImage(activity_id=record.id, **image))
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        await self._commit()
        return record.id

    async def bulk_create(self, records: List[Activity]) -> List[int]:
        if not records:
            return []
        self.db.add_all(records)
        await self._commit()
        return [record.id for record in records]

    async def get(self, activity_id: int) -> Optional[Activity]:
        result = await self.db.execute(select(Activity).where(Activity.id == activity_id))
        return result.scalar_one_or_none()

    async def list_by_parent(self, parent_id: int) -> List[Activity]:
        result = await self.db.execute(
            select(Activity)
            .where(Activity.parent_activity_id == parent_id)
            .order_by(Activity.date, Activity.id)
        )
        return list(result.scalars().all())

    async def update(self, activity_id: int, fields: dict) -> Optional[Activity]:
        activity = await self.get(activity_id)
        if activity is None:
            return None
        for key, value in fields.items():
            setattr(activity, key, value)
        await self._commit()
        await self.db.refresh(activity)
        return activity

    async def delete(self, activity_id: int) -> bool:
        activity = await self.get(activity_id)
        if activity is None:
            return False
        try:
            # Instances outlive their parent as standalone activities
            await self.db.execute(
                update(Activity)
                .where(Activity.parent_activity_id == activity_id)
                .values(parent_activity_id=None)
            )
            await self.db.execute(delete(ActivityImage).where(ActivityImage.activity_id == activity_id))
            await self.db.delete(activity)
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        await self._commit()
        return True

    async def list_images(self, activity_id: int) -> List[ActivityImage]:
        result = await self.db.execute(
            select(ActivityImage)
            .where(ActivityImage.activity_id == activity_id)
            .order_by(ActivityImage.image_order, ActivityImage.id)
        )
        return list(result.scalars().all())

    async def list_images_for(self, activity_ids: List[int]) -> Dict[int, List[ActivityImage]]:
        grouped: Dict[int, List[ActivityImage]] = {activity_id: [] for activity_id in activity_ids}
        if not activity_ids:
            return grouped
        result = await self.db.execute(
            select(ActivityImage)
            .where(ActivityImage.activity_id.in_(activity_ids))
            .order_by(ActivityImage.activity_id, ActivityImage.image_order, ActivityImage.id)
        )
        for image in result.scalars().all():
            grouped[image.activity_id].append(image)
        return grouped

    async def add_images(self, activity_id: int, images: Iterable[dict]) -> None:
        self.db.add_all([ActivityImage(activity_id=activity_id, **image) for image in images])
        await self._commit()

    async def list_incomplete_parents(self) -> List[Activity]:
        """Recurring parents that ended up with no instances at all."""
        child = aliased(Activity)
        result = await self.db.execute(
            select(Activity)
            .where(
                Activity.is_recurring.is_(True),
                ~exists().where(child.parent_activity_id == Activity.id),
            )
            .order_by(Activity.created_at)
        )
        return list(result.scalars().all())
