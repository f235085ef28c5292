from .base import Base

from .fcm_device import FcmDevice, DeviceStatus
from .fcm_user_subscription import FcmUserSubscription, SubscriptionStatus, UserType
from .fcm_cleanup_log import FcmCleanupLog
from .notification import Notification
