from .tracked_metric import TrackedMetric, MetricKind
from .meal_status import MealStatus, MealState
from .history_snapshot import HistorySnapshot
from .user_profile import UserProfile

__all__ = [
    "TrackedMetric",
    "MetricKind",
    "MealStatus",
    "MealState",
    "HistorySnapshot",
    "UserProfile",
]
