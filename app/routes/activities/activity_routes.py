from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from app.core.database import get_db
from app.core.cache import get_cache
from app.core.exceptions import ActivityValidationError, InstanceWriteError, ParentWriteError
from app.core.logger import logger
from app.schemas.activities.activity import (
    ActivityCreate, ActivityResponse, ActivityUpdate, ActivityImageResponse, SeriesResponse,
)
from app.models.user.user import User
from app.services.activities.series_service import SeriesService
from app.dependencies.auth import get_current_user


router = APIRouter(prefix="/activities", tags=["activities"])


async def get_series_service(
    cache=Depends(get_cache)
) -> SeriesService:
    return SeriesService(cache)


def validation_error(e: ActivityValidationError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.to_dict())


# 🔹 Create activity, a recurring one also generates its series
@router.post("/", response_model=SeriesResponse, status_code=status.HTTP_201_CREATED)
async def create_activity(
    activity_data: ActivityCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    series_service: SeriesService = Depends(get_series_service)
):
    try:
        series = await series_service.create_activity(
            db=db,
            current_user=current_user,
            activity_data=activity_data
        )
    except ActivityValidationError as e:
        raise validation_error(e)
    except ParentWriteError:
        raise HTTPException(status_code=500, detail="Failed to create activity")
    except InstanceWriteError as e:
        logger.error(f"🔥 Series generation failed for parent {e.parent_id}")
        raise HTTPException(
            status_code=500,
            detail={"message": "Failed to generate recurring instances", "parent_id": e.parent_id}
        )

    return SeriesResponse(
        activity_id=series.parent_id,
        is_recurring=activity_data.recurrence is not None,
        instance_ids=series.instance_ids,
        instance_count=series.instance_count,
        media_failures=series.media_failures,
    )

# 🔹 Get one activity with its images
@router.get("/{activity_id}", response_model=ActivityResponse)
async def get_activity(
    activity_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    series_service: SeriesService = Depends(get_series_service)
):
    return await series_service.get_activity(db=db, activity_id=activity_id)

# 🔹 Instances generated from a recurring parent
@router.get("/{activity_id}/instances", response_model=List[ActivityResponse])
async def list_instances(
    activity_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    series_service: SeriesService = Depends(get_series_service)
):
    return await series_service.list_instances(db=db, parent_id=activity_id)

@router.get("/{activity_id}/images", response_model=List[ActivityImageResponse])
async def list_images(
    activity_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    series_service: SeriesService = Depends(get_series_service)
):
    return await series_service.list_images(db=db, activity_id=activity_id)

# 🔹 Update activity (owner or admin)
@router.put("/{activity_id}", response_model=ActivityResponse)
async def update_activity(
    activity_id: int,
    activity_update: ActivityUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    series_service: SeriesService = Depends(get_series_service)
):
    try:
        return await series_service.update_activity(
            db=db,
            current_user=current_user,
            activity_id=activity_id,
            activity_update=activity_update
        )
    except ActivityValidationError as e:
        raise validation_error(e)

# 🔹 Delete activity (owner or admin), instances are kept
@router.delete("/{activity_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_activity(
    activity_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    series_service: SeriesService = Depends(get_series_service)
):
    await series_service.delete_activity(
        db=db,
        current_user=current_user,
        activity_id=activity_id
    )
