import math
from typing import Optional

import config
from utils.exception_handler import ValidationError


DIMENSION_KEYS = ("length", "width", "height")


def _as_number(value, field: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number", details={field: value})
    if math.isnan(number) or math.isinf(number):
        raise ValidationError(f"{field} must be a finite number", details={field: value})
    return number


def _raw_volumetric(dimensions: Optional[dict]) -> float:
    if not dimensions:
        return 0.0

    values = []
    for key in DIMENSION_KEYS:
        raw = dimensions.get(key)
        if raw is None:
            return 0.0
        number = _as_number(raw, key)
        if number < 0:
            raise ValidationError(
                f"{key} cannot be negative", details={key: raw}
            )
        values.append(number)

    length, width, height = values
    return (length * width * height) / config.DIMENSIONAL_FACTOR


def volumetric_weight(dimensions: Optional[dict]) -> float:
    """L x W x H (cm) over the dimensional factor, in kg. Rounded for display."""
    return round(_raw_volumetric(dimensions), 2)


def billed_weight(
    actual_weight_kg,
    dimensions_cm: Optional[dict] = None,
    minimum_billable_weight_kg=config.DEFAULT_MIN_BILLABLE_WEIGHT,
) -> float:
    """
    Chargeable weight: the greater of actual and volumetric weight, rounded up
    to the next multiple of the minimum billable weight.

    Examples (min 0.5 kg):
        0.3 kg          -> 0.5
        1.0 kg          -> 1.0
        1.01 kg         -> 1.5
        0.5 kg, 30x20x10 cm (1.2 kg volumetric) -> 1.5
    """
    actual = _as_number(actual_weight_kg, "weight")
    if actual <= 0:
        raise ValidationError(
            "weight must be greater than zero", details={"weight": actual_weight_kg}
        )

    minimum = _as_number(minimum_billable_weight_kg, "minimumBillableWeight")
    if minimum <= 0:
        raise ValidationError(
            "minimumBillableWeight must be greater than zero",
            details={"minimumBillableWeight": minimum_billable_weight_kg},
        )

    chargeable = max(actual, _raw_volumetric(dimensions_cm))

    # 1.5 / 0.5 must not become 3.0000000000000004
    steps = math.ceil(round(chargeable / minimum, 9))
    steps = max(steps, 1)

    return round(steps * minimum, 6)


def weight_multiplier(billed: float, minimum_billable_weight_kg: float) -> int:
    """Number of billing slabs in a billed weight, never less than one."""
    return max(1, math.ceil(round(billed / minimum_billable_weight_kg, 9)))
