"""
Profile / goals schemas.

GET /profile → ProfileResponse
PUT /profile → ProfileUpdate → ProfileResponse
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MealPlanEntry(BaseModel):
    id: int = Field(ge=1)
    name: str = Field(min_length=1, max_length=128)


class ProfileUpdate(BaseModel):
    """Partial update: only fields present in the request body are changed."""
    sex: Optional[str] = Field(default=None, max_length=16, examples=["female"])
    weight_kg: Optional[float] = Field(default=None, gt=0, le=500)
    height_cm: Optional[float] = Field(default=None, gt=0, le=300)
    age: Optional[int] = Field(default=None, gt=0, le=130)
    activity_level: Optional[str] = Field(default=None, max_length=32, examples=["moderate"])
    weight_goal: Optional[str] = Field(default=None, max_length=32, examples=["lose"])
    water_target_ml: Optional[int] = Field(default=None, gt=0, le=20000)
    weekly_exercise_minutes: Optional[int] = Field(default=None, gt=0, le=5000)
    calorie_target: Optional[int] = Field(default=None, gt=0, le=20000)
    meal_plan: Optional[list[MealPlanEntry]] = Field(default=None, max_length=20)

    @field_validator("meal_plan")
    @classmethod
    def meal_ids_unique(cls, v: Optional[list[MealPlanEntry]]) -> Optional[list[MealPlanEntry]]:
        if v is not None and len({m.id for m in v}) != len(v):
            raise ValueError("meal ids must be unique")
        return v


class TargetsResponse(BaseModel):
    water_ml: int
    exercise_minutes: int = Field(description="Daily share of the weekly goal.")
    calories: int
    meals: list[MealPlanEntry]


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    sex: Optional[str] = None
    weight_kg: Optional[float] = None
    height_cm: Optional[float] = None
    age: Optional[int] = None
    activity_level: Optional[str] = None
    weight_goal: Optional[str] = None
    water_target_ml: Optional[int] = None
    weekly_exercise_minutes: Optional[int] = None
    calorie_target: Optional[int] = None
    targets: TargetsResponse = Field(description="Targets the next new day would start with.")
