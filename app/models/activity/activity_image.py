from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Boolean
from sqlalchemy.orm import relationship
from datetime import datetime
from app.core.database import Base


class ActivityImage(Base):
    __tablename__ = "activity_images"

    id = Column(Integer, primary_key=True, index=True)
    activity_id = Column(Integer, ForeignKey("activities.id", ondelete="CASCADE"), nullable=False, index=True)
    image_url = Column(String, nullable=False)
    image_order = Column(Integer, nullable=False, default=1)
    is_primary = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    activity = relationship("Activity", back_populates="images")

    def to_dict(self):
        return {
            "id": self.id,
            "activity_id": self.activity_id,
            "image_url": self.image_url,
            "image_order": self.image_order,
            "is_primary": self.is_primary,
        }
