from .user.user import User, UserRole
from .activity.activity import Activity
from .activity.activity_image import ActivityImage
