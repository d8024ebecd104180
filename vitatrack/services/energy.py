"""
Energy and goal arithmetic.

Pure functions, no DB. Used by vitatrack.services.goals to derive daily
targets from body data when the user has not set an explicit goal.

  BMR      — Mifflin-St Jeor
  TEE      — BMR * activity factor
  calories — TEE * weight-goal factor, rounded to whole kcal
  water    — 35 ml per kg of body weight
  exercise — weekly minutes (WHO baseline 150) adjusted by goal, age,
             weight and activity level; apportioned per day
"""
from __future__ import annotations

import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

ACTIVITY_FACTORS: dict[str, float] = {
    "sedentary": 1.2,
    "light": 1.375,
    "moderate": 1.55,
    "very": 1.725,
    "extreme": 1.9,
}

GOAL_FACTORS: dict[str, float] = {
    "lose": 0.8,
    "maintain": 1.0,
    "gain": 1.15,
}

WATER_ML_PER_KG = 35
WHO_WEEKLY_EXERCISE_MINUTES = 150

# Free-text labels (Portuguese or English) seen in onboarding answers.
_ACTIVITY_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"sedent[aá]ri", re.IGNORECASE), "sedentary"),
    (re.compile(r"extrem|athlet|atl[eé]tic", re.IGNORECASE), "extreme"),
    (re.compile(r"muito|very|alta|high", re.IGNORECASE), "very"),
    (re.compile(r"leve|light", re.IGNORECASE), "light"),
    (re.compile(r"moder", re.IGNORECASE), "moderate"),
]

_GOAL_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"perd|emagrec|lose|loss", re.IGNORECASE), "lose"),
    (re.compile(r"ganh|aument|gain|hipertrof|muscle|muscular", re.IGNORECASE), "gain"),
    (re.compile(r"mant|maintain|sa[uú]de|health", re.IGNORECASE), "maintain"),
]


def normalize_activity_level(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    if text in ACTIVITY_FACTORS:
        return text
    for pattern, level in _ACTIVITY_PATTERNS:
        if pattern.search(text):
            return level
    return None


def normalize_weight_goal(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    if text in GOAL_FACTORS:
        return text
    for pattern, goal in _GOAL_PATTERNS:
        if pattern.search(text):
            return goal
    return None


def _is_female(sex: str) -> bool:
    return sex.strip().lower() in {"female", "f", "feminino", "mulher", "woman"}


def calc_bmr(sex: str, weight_kg: float, height_cm: float, age: int) -> float:
    base = 10 * weight_kg + 6.25 * height_cm - 5 * age
    return base - 161 if _is_female(sex) else base + 5


def calc_tee(bmr: float, activity_level: str = "moderate") -> float:
    return bmr * ACTIVITY_FACTORS[activity_level]


def calc_target_calories(tee: float, weight_goal: str = "maintain") -> int:
    return int(Decimal(str(tee * GOAL_FACTORS[weight_goal])).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calc_daily_calories(
    sex: str,
    weight_kg: float,
    height_cm: float,
    age: int,
    activity_level: Optional[str] = None,
    weight_goal: Optional[str] = None,
) -> int:
    bmr = calc_bmr(sex, weight_kg, height_cm, age)
    tee = calc_tee(bmr, normalize_activity_level(activity_level) or "moderate")
    return calc_target_calories(tee, normalize_weight_goal(weight_goal) or "maintain")


def calc_water_target_ml(weight_kg: float) -> int:
    return int(Decimal(str(weight_kg * WATER_ML_PER_KG)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calc_weekly_exercise_minutes(
    weight_goal: Optional[str] = None,
    age: Optional[int] = None,
    weight_kg: Optional[float] = None,
    activity_level: Optional[str] = None,
) -> int:
    goal = normalize_weight_goal(weight_goal)
    level = normalize_activity_level(activity_level)
    target = float(WHO_WEEKLY_EXERCISE_MINUTES)

    if goal == "lose":
        target = 265 if level in ("sedentary", "light") else 225
    elif goal == "gain":
        target = 180

    # Heavier users start a little more conservatively.
    if weight_kg is not None and weight_kg > 90:
        target = max(150, target - min(30, (weight_kg - 90) / 2))

    if age is not None:
        if age > 60:
            target = max(120, target - 30)
        elif age < 30:
            target += 15

    if level == "sedentary":
        target = min(target, 150)
    elif level == "very":
        target = max(target, 200)
    elif level == "extreme":
        target = max(target, 250)

    return int(Decimal(str(target)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def daily_share(weekly_minutes: int) -> int:
    """Whole minutes per day for a weekly goal; never below one."""
    per_day = (Decimal(weekly_minutes) / Decimal(7)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return max(1, int(per_day))
