"""
Profile router — goal inputs for new tracking days.

GET /profile  — stored profile plus the targets a new day would start with
PUT /profile  — partial update
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from vitatrack.db.base import get_db
from vitatrack.models.user_profile import UserProfile
from vitatrack.routers.deps import get_current_user_id
from vitatrack.schemas.profile import MealPlanEntry, ProfileResponse, ProfileUpdate, TargetsResponse
from vitatrack.services.goals import MealPlanItem, get_profile, resolve_targets, upsert_profile

router = APIRouter(prefix="/profile", tags=["profile"])


def _opt_float(v) -> Optional[float]:
    return float(v) if v is not None else None


def _profile_to_response(user_id: str, p: Optional[UserProfile]) -> ProfileResponse:
    t = resolve_targets(p)
    targets = TargetsResponse(
        water_ml=t.water_ml,
        exercise_minutes=t.exercise_minutes,
        calories=t.calories,
        meals=[MealPlanEntry(id=m.id, name=m.name) for m in t.meals],
    )
    if p is None:
        return ProfileResponse(user_id=user_id, targets=targets)
    return ProfileResponse(
        user_id=p.user_id,
        sex=p.sex,
        weight_kg=_opt_float(p.weight_kg),
        height_cm=_opt_float(p.height_cm),
        age=p.age,
        activity_level=p.activity_level,
        weight_goal=p.weight_goal,
        water_target_ml=p.water_target_ml,
        weekly_exercise_minutes=p.weekly_exercise_minutes,
        calorie_target=p.calorie_target,
        targets=targets,
    )


@router.get("", response_model=ProfileResponse, summary="Current profile and derived targets")
def read_profile(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """A user without a profile gets the default targets."""
    return _profile_to_response(user_id, get_profile(db, user_id))


@router.put("", response_model=ProfileResponse, summary="Update profile / goals")
def update_profile(
    payload: ProfileUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Changes apply to days initialized after this call. Today's targets stay
    as they are; use `PUT /tracking/{kind}/target` to change them mid-day.
    """
    fields = payload.model_dump(exclude_unset=True)
    if "meal_plan" in fields and fields["meal_plan"] is not None:
        fields["meal_plan"] = [MealPlanItem(m["id"], m["name"]) for m in fields["meal_plan"]]
    profile = upsert_profile(db, user_id, fields)
    return _profile_to_response(user_id, profile)
