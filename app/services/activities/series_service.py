from datetime import date
from typing import Dict, List, Optional
from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.cache import RedisCache
from app.core.config import settings
from app.core.exceptions import InstanceWriteError, ParentWriteError
from app.core.logger import logger
from app.dependencies.auth import ensure_owner_or_admin
from app.models.activity.activity import Activity, RECURRENCE_FIELDS, TEMPLATE_FIELDS
from app.models.activity.activity_image import ActivityImage
from app.models.user.user import User
from app.schemas.activities.activity import (
    ActivityCreate, ActivityInstanceDraft, ActivityResponse, ActivityTemplate, ActivityUpdate,
    ActivityImageResponse,
)
from app.schemas.activities.recurrence import RecurrenceRule, RecurrenceSeries
from app.services.activities.activity_store import ActivityStore
from app.services.activities.media_service import MediaPropagator
from app.services.activities.recurrence import (
    generate_instances, validate_recurrence_rule, validate_template,
)


def build_parent(owner_id: int, activity_data: ActivityCreate, rule: Optional[RecurrenceRule]) -> Activity:
    """Row for a standalone activity, or for a recurrence parent when ``rule`` is set."""
    values = activity_data.template().model_dump()
    activity = Activity(
        owner_id=owner_id,
        date=activity_data.date,
        parent_activity_id=None,
        is_recurring=rule is not None,
        **values,
    )
    if rule is not None:
        activity.recurrence_type = rule.type
        activity.recurrence_days = sorted(set(rule.days))
        activity.recurrence_start = rule.start
        activity.recurrence_end = rule.end
    return activity


def build_instance(owner_id: int, parent_id: int, draft: ActivityInstanceDraft) -> Activity:
    activity = Activity(
        owner_id=owner_id,
        parent_activity_id=parent_id,
        is_recurring=False,
        **draft.model_dump(),
    )
    for field in RECURRENCE_FIELDS:
        setattr(activity, field, None)
    return activity


def image_rows(urls: List[str]) -> List[dict]:
    return [
        {"image_url": url, "image_order": index + 1, "is_primary": index == 0}
        for index, url in enumerate(urls)
    ]


def to_response(activity: Activity, images: List[ActivityImage]) -> ActivityResponse:
    return ActivityResponse.model_validate({
        **activity.to_dict(),
        "images": [image.to_dict() for image in images],
    })


class SeriesService:
    def __init__(self, cache: RedisCache):
        self.cache = cache

    async def _bump_series_version(self, parent_id: int) -> None:
        current_version = await self.cache.get(f"activities_version:{parent_id}") or 1
        await self.cache.set(f"activities_version:{parent_id}", current_version + 1, expire=86400)

    async def create_activity(
        self,
        db: AsyncSession,
        current_user: User,
        activity_data: ActivityCreate,
        today: Optional[date] = None,
    ) -> RecurrenceSeries:
        """Create a standalone activity, or a recurring parent and its whole series.

        Writes happen in three separate steps: the parent with its images, the
        instances in one batch, then the image copies. A failure in a later
        step does not undo the earlier ones.
        """
        template = validate_template(activity_data.template())
        rule = activity_data.recurrence
        if rule is not None:
            validate_recurrence_rule(rule, today or date.today(), settings.RECURRENCE_HORIZON_DAYS)

        store = ActivityStore(db)

        parent = build_parent(current_user.id, activity_data, rule)
        try:
            parent_id = await store.create(parent, image_rows(activity_data.images))
        except SQLAlchemyError as e:
            logger.error(f"Failed to create activity for user {current_user.id}: {e}")
            raise ParentWriteError("Failed to create activity") from e

        if rule is None:
            logger.info(f"Activity {parent_id} created by user {current_user.id}")
            return RecurrenceSeries(parent_id=parent_id)

        drafts = generate_instances(
            template,
            rule,
            horizon_days=settings.RECURRENCE_HORIZON_DAYS,
            max_instances=settings.RECURRENCE_MAX_INSTANCES,
        )
        instances = [build_instance(current_user.id, parent_id, draft) for draft in drafts]

        try:
            instance_ids = await store.bulk_create(instances)
        except SQLAlchemyError as e:
            logger.error(f"Recurring activity {parent_id} left without instances: {e}")
            raise InstanceWriteError(parent_id) from e

        try:
            media_failures = await MediaPropagator(store).propagate(parent_id, instance_ids)
        except SQLAlchemyError as e:
            logger.error(f"Could not read images of activity {parent_id}, none copied: {e}")
            media_failures = list(instance_ids)

        await self._bump_series_version(parent_id)

        logger.info(
            f"Recurring activity {parent_id} created by user {current_user.id} "
            f"with {len(instance_ids)} instances"
        )
        return RecurrenceSeries(
            parent_id=parent_id,
            instance_ids=instance_ids,
            media_failures=media_failures,
        )

    async def _get_or_404(self, store: ActivityStore, activity_id: int) -> Activity:
        activity = await store.get(activity_id)
        if not activity:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Activity not found")
        return activity

    async def get_activity(self, db: AsyncSession, activity_id: int) -> ActivityResponse:
        store = ActivityStore(db)
        activity = await self._get_or_404(store, activity_id)
        return to_response(activity, await store.list_images(activity_id))

    async def list_images(self, db: AsyncSession, activity_id: int) -> List[ActivityImageResponse]:
        store = ActivityStore(db)
        await self._get_or_404(store, activity_id)
        images = await store.list_images(activity_id)
        return [ActivityImageResponse.model_validate(image.to_dict()) for image in images]

    async def list_instances(self, db: AsyncSession, parent_id: int) -> List[ActivityResponse]:
        version = await self.cache.get(f"activities_version:{parent_id}") or 1
        cache_key = self.cache.build_key("activities", "instances", parent_id)
        cached = await self.cache.get(cache_key, version=version)
        if cached is not None:
            logger.info(f"Retrieved instances of activity {parent_id} from cache")
            return [ActivityResponse.model_validate(item) for item in cached]

        store = ActivityStore(db)
        await self._get_or_404(store, parent_id)
        instances = await store.list_by_parent(parent_id)
        images: Dict[int, List[ActivityImage]] = await store.list_images_for([i.id for i in instances])
        response = [to_response(instance, images[instance.id]) for instance in instances]

        await self.cache.set(
            cache_key,
            [item.model_dump(mode="json") for item in response],
            expire=settings.SERIES_CACHE_TTL_SECONDS,
            version=version,
        )
        return response

    async def update_activity(
        self,
        db: AsyncSession,
        current_user: User,
        activity_id: int,
        activity_update: ActivityUpdate,
    ) -> ActivityResponse:
        store = ActivityStore(db)
        activity = await self._get_or_404(store, activity_id)
        ensure_owner_or_admin(activity.owner_id, current_user, action="update")

        # null only clears an end date, every other column keeps its value
        update_data = {
            key: value
            for key, value in activity_update.model_dump(exclude_unset=True).items()
            if value is not None or key == "recurrence_end"
        }
        rule_changes = {key: update_data[key] for key in RECURRENCE_FIELDS if key in update_data}
        if rule_changes and not activity.is_recurring:
            if any(value is not None for value in rule_changes.values()):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Only a recurring parent activity has a recurrence rule",
                )
            update_data.pop("recurrence_end", None)
            rule_changes = {}

        if any(key in TEMPLATE_FIELDS for key in update_data):
            merged = {**activity.template_values(), **{
                key: value for key, value in update_data.items() if key in TEMPLATE_FIELDS
            }}
            validate_template(ActivityTemplate.model_validate(merged))

        if rule_changes:
            edited_rule = RecurrenceRule(
                type=rule_changes.get("recurrence_type") or activity.recurrence_type,
                days=rule_changes.get("recurrence_days", activity.recurrence_days) or [],
                start=activity.recurrence_start,
                end=rule_changes.get("recurrence_end", activity.recurrence_end),
            )
            # start is not editable, so it is only checked against itself
            validate_recurrence_rule(edited_rule, activity.recurrence_start, settings.RECURRENCE_HORIZON_DAYS)
            update_data["recurrence_days"] = sorted(set(edited_rule.days))
            update_data["recurrence_type"] = edited_rule.type
            logger.info(f"Recurrence rule of activity {activity_id} edited, existing instances kept as they are")

        parent_id = activity.parent_activity_id
        updated = await store.update(activity_id, update_data)

        await self._bump_series_version(activity_id)
        if parent_id:
            await self._bump_series_version(parent_id)

        logger.info(f"Activity {activity_id} updated by user {current_user.id}")
        return to_response(updated, await store.list_images(activity_id))

    async def delete_activity(self, db: AsyncSession, current_user: User, activity_id: int) -> None:
        store = ActivityStore(db)
        activity = await self._get_or_404(store, activity_id)
        ensure_owner_or_admin(activity.owner_id, current_user, action="delete")

        parent_id = activity.parent_activity_id
        await store.delete(activity_id)

        await self._bump_series_version(activity_id)
        if parent_id:
            await self._bump_series_version(parent_id)
        logger.info(f"Activity {activity_id} deleted by user {current_user.id}")

    async def list_incomplete_series(self, db: AsyncSession) -> List[ActivityResponse]:
        store = ActivityStore(db)
        parents = await store.list_incomplete_parents()
        images = await store.list_images_for([p.id for p in parents])
        return [to_response(parent, images[parent.id]) for parent in parents]

    async def cleanup_incomplete_series(self, db: AsyncSession, current_user: User, parent_id: int) -> None:
        store = ActivityStore(db)
        parent = await self._get_or_404(store, parent_id)
        if not parent.is_recurring:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Activity is not a recurring parent")
        if await store.list_by_parent(parent_id):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Series already has instances")

        await store.delete(parent_id)
        await self._bump_series_version(parent_id)
        logger.info(f"Incomplete series {parent_id} removed by admin {current_user.id}")
