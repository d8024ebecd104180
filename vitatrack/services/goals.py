"""
Goals service — resolves the targets a new tracking day starts with.

Precedence per metric: explicit profile goal > value derived from body
data > configured default. A missing or empty profile is not an error;
the defaults apply.

Public API
----------
resolve_targets(profile)            -> DailyTargets   (pure)
load_targets(db, user_id)           -> DailyTargets
default_target(kind)                -> Decimal
get_profile(db, user_id)            -> UserProfile | None
upsert_profile(db, user_id, fields) -> UserProfile
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.orm import Session

from vitatrack.core.config import settings
from vitatrack.db.repository import TrackingRepository
from vitatrack.models.tracked_metric import MetricKind
from vitatrack.models.user_profile import UserProfile
from vitatrack.services import energy

logger = logging.getLogger(__name__)


@dataclass
class MealPlanItem:
    id: int
    name: str


@dataclass
class DailyTargets:
    water_ml: int
    exercise_minutes: int
    calories: int
    meals: list[MealPlanItem]

    def for_kind(self, kind: MetricKind) -> Decimal:
        if kind == MetricKind.water:
            return Decimal(self.water_ml)
        if kind == MetricKind.exercise:
            return Decimal(self.exercise_minutes)
        if kind == MetricKind.calorie:
            return Decimal(self.calories)
        return Decimal(len(self.meals))


DEFAULT_MEAL_PLAN: list[MealPlanItem] = [
    MealPlanItem(1, "Breakfast"),
    MealPlanItem(2, "Morning snack"),
    MealPlanItem(3, "Lunch"),
    MealPlanItem(4, "Afternoon snack"),
    MealPlanItem(5, "Dinner"),
]


def default_targets() -> DailyTargets:
    return DailyTargets(
        water_ml=settings.DEFAULT_WATER_TARGET_ML,
        exercise_minutes=energy.daily_share(settings.DEFAULT_WEEKLY_EXERCISE_MINUTES),
        calories=settings.DEFAULT_CALORIE_TARGET,
        meals=list(DEFAULT_MEAL_PLAN),
    )


def default_target(kind: MetricKind) -> Decimal:
    return default_targets().for_kind(kind)


# ---------------------------------------------------------------------------
# Meal plan (JSON text column)
# ---------------------------------------------------------------------------

def parse_meal_plan(text: Optional[str]) -> list[MealPlanItem]:
    """Decode the stored plan; anything malformed yields an empty list."""
    if not text:
        return []
    try:
        raw = json.loads(text)
    except (ValueError, TypeError):
        return []
    if not isinstance(raw, list):
        return []
    items: list[MealPlanItem] = []
    seen: set[int] = set()
    for obj in raw:
        if not isinstance(obj, dict):
            continue
        try:
            meal_id = int(obj["id"])
            name = str(obj["name"]).strip()
        except (KeyError, TypeError, ValueError):
            continue
        if name and meal_id not in seen:
            seen.add(meal_id)
            items.append(MealPlanItem(meal_id, name))
    return items


def dump_meal_plan(items: list[MealPlanItem]) -> str:
    return json.dumps([{"id": m.id, "name": m.name} for m in items], ensure_ascii=False)


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def _float(v) -> Optional[float]:
    return float(v) if v is not None else None


def resolve_targets(profile: Optional[UserProfile]) -> DailyTargets:
    targets = default_targets()
    if profile is None:
        return targets

    weight = _float(profile.weight_kg)
    height = _float(profile.height_cm)

    # Water
    if profile.water_target_ml:
        targets.water_ml = profile.water_target_ml
    elif weight:
        targets.water_ml = energy.calc_water_target_ml(weight)

    # Exercise
    if profile.weekly_exercise_minutes:
        targets.exercise_minutes = energy.daily_share(profile.weekly_exercise_minutes)
    elif any(v is not None for v in (profile.weight_goal, profile.age, weight, profile.activity_level)):
        weekly = energy.calc_weekly_exercise_minutes(
            weight_goal=profile.weight_goal,
            age=profile.age,
            weight_kg=weight,
            activity_level=profile.activity_level,
        )
        targets.exercise_minutes = energy.daily_share(weekly)

    # Calories
    if profile.calorie_target:
        targets.calories = profile.calorie_target
    elif profile.sex and weight and height and profile.age:
        targets.calories = energy.calc_daily_calories(
            sex=profile.sex,
            weight_kg=weight,
            height_cm=height,
            age=profile.age,
            activity_level=profile.activity_level,
            weight_goal=profile.weight_goal,
        )

    # Meals
    plan = parse_meal_plan(profile.meal_plan)
    if plan:
        targets.meals = plan

    return targets


def load_targets(db: Session, user_id: str) -> DailyTargets:
    profile = TrackingRepository(db).get_profile(user_id)
    if profile is None:
        logger.debug("No profile for user=%s, using default targets", user_id)
    return resolve_targets(profile)


# ---------------------------------------------------------------------------
# Profile maintenance
# ---------------------------------------------------------------------------

_PROFILE_FIELDS = (
    "sex", "weight_kg", "height_cm", "age", "activity_level", "weight_goal",
    "water_target_ml", "weekly_exercise_minutes", "calorie_target",
)


def get_profile(db: Session, user_id: str) -> Optional[UserProfile]:
    return TrackingRepository(db).get_profile(user_id)


def upsert_profile(db: Session, user_id: str, fields: dict[str, Any]) -> UserProfile:
    """
    Create or update the user's profile with the given fields.
    Only keys present in `fields` are touched. Targets of days already
    initialized are not affected; the new values apply from the next day
    (or through an explicit set_target).
    """
    repo = TrackingRepository(db)
    profile = repo.get_profile(user_id)
    if profile is None:
        profile = UserProfile(user_id=user_id)
        repo.add(profile)

    for name in _PROFILE_FIELDS:
        if name in fields:
            setattr(profile, name, fields[name])
    if "meal_plan" in fields:
        plan = fields["meal_plan"]
        profile.meal_plan = dump_meal_plan(plan) if plan is not None else None

    repo.commit("save user profile")
    repo.refresh(profile, "reload user profile")
    return profile
