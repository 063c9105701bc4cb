"""
Weighted composite rating.

The final score blends four 1-5 inputs with fixed weights. An input that is
not available yet is replaced by ``MISSING_INPUT_DEFAULT`` (a neutral 3) so a
partially reviewed employee is neither rewarded nor penalised for gaps.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

from perfreview.core.errors import ValidationError

WEIGHTS: dict[str, Decimal] = {
    "self_assessment": Decimal("0.40"),
    "feedback_360": Decimal("0.30"),
    "l3_input": Decimal("0.20"),
    "kra_achievement": Decimal("0.10"),
}

MISSING_INPUT_DEFAULT = Decimal("3")

RATING_MIN = Decimal("1")
RATING_MAX = Decimal("5")

ONE_DECIMAL = Decimal("0.1")

RatingInput = int | float | Decimal | str | None


def _as_rating(name: str, value: RatingInput) -> Decimal | None:
    if value is None:
        return None
    try:
        rating = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"{name} must be a number", details={"field": name})
    if not (RATING_MIN <= rating <= RATING_MAX):
        raise ValidationError(f"{name} must be between 1 and 5", details={"field": name})
    return rating


@dataclass(frozen=True)
class RatingBreakdown:
    inputs: dict[str, Decimal | None]
    substituted: list[str] = field(default_factory=list)
    weighted_rating: Decimal = MISSING_INPUT_DEFAULT

    @property
    def suggested_final_rating(self) -> int:
        return to_final_rating(self.weighted_rating)


def rating_breakdown(
    self_assessment_score: RatingInput,
    feedback_average: RatingInput,
    l3_rating: RatingInput,
    kra_score: RatingInput,
) -> RatingBreakdown:
    inputs = {
        "self_assessment": _as_rating("self_assessment_score", self_assessment_score),
        "feedback_360": _as_rating("feedback_average", feedback_average),
        "l3_input": _as_rating("l3_rating", l3_rating),
        "kra_achievement": _as_rating("kra_score", kra_score),
    }
    substituted = [name for name, value in inputs.items() if value is None]

    total = sum(
        (WEIGHTS[name] * (value if value is not None else MISSING_INPUT_DEFAULT) for name, value in inputs.items()),
        Decimal("0"),
    )
    return RatingBreakdown(
        inputs=inputs,
        substituted=substituted,
        weighted_rating=total.quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP),
    )


def compute_rating(
    self_assessment_score: RatingInput,
    feedback_average: RatingInput,
    l3_rating: RatingInput,
    kra_score: RatingInput,
) -> Decimal:
    """Weighted rating rounded half-up to one decimal place."""
    return rating_breakdown(self_assessment_score, feedback_average, l3_rating, kra_score).weighted_rating


def to_final_rating(weighted: Decimal) -> int:
    """Collapse a weighted score onto the 1-5 rating scale."""
    rating = int(weighted.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return max(1, min(5, rating))


def mean(values: Iterable[Decimal]) -> Decimal | None:
    values = list(values)
    if not values:
        return None
    return sum(values, Decimal("0")) / len(values)


def self_assessment_score(payload: Mapping[str, Any] | None) -> Decimal | None:
    """
    Mean of the 1-5 ratings an employee gives themselves:
    ``teamCollaboration`` plus every value in ``selfRatings``.
    Non-numeric or out-of-range entries are ignored.
    """
    if not payload:
        return None

    candidates: list[Any] = [payload.get("teamCollaboration")]
    self_ratings = payload.get("selfRatings") or {}
    if isinstance(self_ratings, Mapping):
        candidates.extend(self_ratings.values())

    ratings: list[Decimal] = []
    for raw in candidates:
        if raw is None or isinstance(raw, bool):
            continue
        try:
            value = Decimal(str(raw))
        except InvalidOperation:
            continue
        if RATING_MIN <= value <= RATING_MAX:
            ratings.append(value)
    return mean(ratings)


def kra_score(entries: Iterable[Mapping[str, Any]] | None) -> Decimal | None:
    """Weight-averaged KRA achievement; entries without a weight count once."""
    if not entries:
        return None

    weighted_sum = Decimal("0")
    total_weight = Decimal("0")
    for entry in entries:
        score = _as_rating("kra score", entry.get("score"))
        if score is None:
            continue
        weight = Decimal(str(entry.get("weight") or 1))
        if weight <= 0:
            continue
        weighted_sum += score * weight
        total_weight += weight

    if total_weight == 0:
        return None
    return weighted_sum / total_weight
