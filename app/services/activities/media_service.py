from typing import List
from sqlalchemy.exc import SQLAlchemyError
from app.core.exceptions import MediaPropagationError
from app.core.logger import logger
from app.services.activities.activity_store import ActivityStore


class MediaPropagator:
    """Copies a parent's images onto freshly created instances.

    The copy is a snapshot taken once: later edits to the parent's images
    are not carried over. Failures are per instance and never abort the
    rest of the batch.
    """

    def __init__(self, store: ActivityStore):
        self.store = store

    async def propagate(self, parent_id: int, instance_ids: List[int]) -> List[int]:
        """Returns the ids of the instances whose copy failed."""
        images = await self.store.list_images(parent_id)
        if not images or not instance_ids:
            return []

        snapshot = [
            {
                "image_url": image.image_url,
                "image_order": image.image_order,
                "is_primary": image.is_primary,
            }
            for image in images
        ]

        failures = []
        for instance_id in instance_ids:
            try:
                await self.store.add_images(instance_id, snapshot)
            except SQLAlchemyError as e:
                error = MediaPropagationError(instance_id, str(e))
                logger.error(f"Image copy from activity {parent_id} skipped: {error}")
                failures.append(instance_id)

        logger.info(
            f"Copied {len(snapshot)} images from activity {parent_id} "
            f"to {len(instance_ids) - len(failures)}/{len(instance_ids)} instances"
        )
        return failures
