"""
Subscription domain constants
"""

SUBSCRIPTION_STATUS_ACTIVE = "active"
SUBSCRIPTION_STATUS_PAUSED = "paused"
SUBSCRIPTION_STATUS_CANCELED = "canceled"

SUBSCRIPTION_STATUSES = (
    SUBSCRIPTION_STATUS_ACTIVE,
    SUBSCRIPTION_STATUS_PAUSED,
    SUBSCRIPTION_STATUS_CANCELED,
)

SUBSCRIPTION_CATEGORIES = ("video", "music", "software", "cloud", "other")
