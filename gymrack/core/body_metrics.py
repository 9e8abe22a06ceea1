"""
BMI and basal metabolic rate (Mifflin-St Jeor).
"""
import math
from typing import Any, Dict

from gymrack.core.errors import InvalidInputError

MALE = {"male", "m"}


def compute_body_metrics(height_cm: Any, weight_kg: Any, age: Any, gender: Any) -> Dict[str, float]:
    """
    Returns {"bmi": float (1 decimal), "bmr": int}.

    Any gender other than male/m uses the female constant.
    """
    if not height_cm or not weight_kg or not age or not gender:
        raise InvalidInputError("missing_parameters")
    try:
        h = float(height_cm)
        w = float(weight_kg)
        a = float(age)
    except (TypeError, ValueError):
        raise InvalidInputError("missing_parameters")
    if h <= 0 or w <= 0 or a <= 0:
        raise InvalidInputError("missing_parameters")

    height_m = h / 100
    bmi = w / (height_m * height_m)

    bmr = 10 * w + 6.25 * h - 5 * a
    bmr += 5 if str(gender).lower() in MALE else -161

    return {
        "bmi": round(bmi, 1),
        "bmr": math.floor(bmr + 0.5),
    }
