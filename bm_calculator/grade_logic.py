import math
from dataclasses import dataclass
from decimal import Decimal, ROUND_FLOOR
from enum import Enum
from typing import Iterable, Mapping, Optional, Tuple, Union

import numpy as np

from bm_calculator.curriculum import MAX_GRADE, MIN_GRADE

# Displayed goal 6.0 is already reached at 5.75 on the continuous scale.
ROUNDED_GOAL_OFFSET = 0.25


class InvalidWeight(ValueError):
    pass


# ------------------------
# Rounding
# ------------------------
def _round_half_up(x: float, steps: int) -> float:
    # ties go towards +inf, so -6.75 -> -6.7
    scaled = Decimal(str(x)) * steps + Decimal("0.5")
    return float(scaled.to_integral_value(rounding=ROUND_FLOOR) / steps)


def round_1dp_half_up(x: float) -> float:
    return _round_half_up(x, 10)


def round_half_point(x: float) -> float:
    """Round to the nearest 0.5 (BM report card convention), halves go up."""
    return _round_half_up(x, 2)


# ------------------------
# Weight notations
# ------------------------
@dataclass(frozen=True)
class DecimalWeight:
    value: float

    @property
    def weight(self) -> float:
        return self.value


@dataclass(frozen=True)
class FractionWeight:
    num: float
    den: float

    @property
    def weight(self) -> float:
        if self.den == 0:
            raise InvalidWeight(f"Weight {self.num:g}/{self.den:g} has a zero denominator.")
        return self.num / self.den


@dataclass(frozen=True)
class PercentageWeight:
    value: float

    @property
    def weight(self) -> float:
        return self.value / 100


WeightNotation = Union[DecimalWeight, FractionWeight, PercentageWeight]


def _to_float(text: str, raw) -> float:
    try:
        return float(text.strip())
    except ValueError:
        raise InvalidWeight(f"Cannot parse weight {raw!r}.") from None


def parse_weight_notation(value) -> WeightNotation:
    """
    "0.5" -> DecimalWeight, "1/2" -> FractionWeight, "50%" -> PercentageWeight.
    Numbers are taken as DecimalWeight.
    """
    if isinstance(value, bool):
        raise InvalidWeight(f"Cannot parse weight {value!r}.")
    if isinstance(value, (int, float)):
        return DecimalWeight(float(value))

    text = str(value).strip()
    if not text:
        raise InvalidWeight("Weight is empty.")

    if "/" in text:
        num, _, den = text.partition("/")
        return FractionWeight(_to_float(num, value), _to_float(den, value))
    if text.endswith("%"):
        return PercentageWeight(_to_float(text[:-1], value))
    return DecimalWeight(_to_float(text, value))


def parse_weight(value) -> float:
    """Resolve any weight notation to a finite float > 0, else raise InvalidWeight."""
    weight = parse_weight_notation(value).weight
    if not math.isfinite(weight) or weight <= 0:
        raise InvalidWeight(f"Weight must be a positive number (got {value!r}).")
    return weight


# ------------------------
# Weighted averages
# ------------------------
def _as_array(controls) -> np.ndarray:
    """
    controls: iterable of (grade, weight) pairs or objects with
    .grade / .weight attributes
    returns: Nx2 float array -> [grade, weight]
    """
    rows = []
    for c in controls:
        if hasattr(c, "grade"):
            rows.append((c.grade, c.weight))
        else:
            grade, weight = c
            rows.append((grade, weight))
    if not rows:
        return np.zeros((0, 2), dtype=float)
    return np.array(rows, dtype=float)


def weighted_totals(controls) -> Tuple[float, float]:
    """Return (sum of grade*weight, sum of weight)."""
    gw = _as_array(controls)
    if gw.size == 0:
        return 0.0, 0.0
    return float(np.dot(gw[:, 0], gw[:, 1])), float(gw[:, 1].sum())


def weighted_average(controls) -> Optional[float]:
    """Unrounded weighted mean, None for an empty set or zero total weight."""
    weighted_sum, total_weight = weighted_totals(controls)
    if total_weight == 0:
        return None
    return weighted_sum / total_weight


def rounded_average(controls) -> Optional[float]:
    mean = weighted_average(controls)
    return None if mean is None else round_half_point(mean)


def simulate_average(controls, planned=()) -> Optional[float]:
    """Weighted mean of the recorded controls plus hypothetical ones."""
    return weighted_average([*controls, *planned])


def simulate_rounded_average(controls, planned=()) -> Optional[float]:
    mean = simulate_average(controls, planned)
    return None if mean is None else round_half_point(mean)


# ------------------------
# Goal solver
# ------------------------
def required_grade_raw(controls, target: float, next_weight=1.0, planned=()) -> Optional[float]:
    """
    Grade x on one more control of weight `next_weight` such that the
    weighted mean of controls + planned + (x, next_weight) equals `target`.
    """
    baseline = [*controls, *planned]
    if not baseline:
        return None

    w_next = parse_weight(next_weight)
    weighted_sum, total_weight = weighted_totals(baseline)
    return (target * (total_weight + w_next) - weighted_sum) / w_next


def required_grade(controls, target: float, next_weight=1.0, planned=()) -> Optional[float]:
    """Required grade on the next control, rounded to one decimal, never clamped."""
    x = required_grade_raw(controls, target, next_weight, planned)
    return None if x is None else round_1dp_half_up(x)


def rounded_goal_to_real_goal(target: float, offset: float = ROUNDED_GOAL_OFFSET) -> float:
    return target - offset


def required_grade_for_rounded_goal(controls, target: float, next_weight=1.0, planned=(),
                                    offset: float = ROUNDED_GOAL_OFFSET) -> Optional[float]:
    """Same as required_grade, but `target` is the displayed (half-point) goal."""
    return required_grade(controls, rounded_goal_to_real_goal(target, offset), next_weight, planned)


class ProjectionStatus(Enum):
    ALREADY_REACHED = "already_reached"
    REACHABLE = "reachable"
    UNREACHABLE = "unreachable"


def projection_status(required: Optional[float],
                      grade_min: float = MIN_GRADE,
                      grade_max: float = MAX_GRADE) -> Optional[ProjectionStatus]:
    if required is None:
        return None
    if required < grade_min:
        return ProjectionStatus.ALREADY_REACHED
    if required > grade_max:
        return ProjectionStatus.UNREACHABLE
    return ProjectionStatus.REACHABLE


# ------------------------
# Erfahrungsnote / Maturnote
# ------------------------
def _present(values: Iterable[Optional[float]]):
    return [float(v) for v in values if v is not None]


def erfahrungsnote_raw(semester_grades: Mapping[int, Optional[float]]) -> Optional[float]:
    grades = _present(semester_grades.values())
    if not grades:
        return None
    return float(np.mean(grades))


def erfahrungsnote(semester_grades: Mapping[int, Optional[float]]) -> Optional[float]:
    """Unweighted mean of the semester grades, rounded to the 0.5 grid."""
    mean = erfahrungsnote_raw(semester_grades)
    return None if mean is None else round_half_point(mean)


def maturnote(erfahrungs: Optional[float], exam_grade: Optional[float]) -> Optional[float]:
    if erfahrungs is None or exam_grade is None:
        return None
    return round_half_point((erfahrungs + exam_grade) / 2)


def required_exam_grade(erfahrungs: Optional[float], target_maturity: float) -> Optional[float]:
    if erfahrungs is None:
        return None
    return round_1dp_half_up(2 * target_maturity - erfahrungs)


def decisive_grade(subject: str, curriculum, erfahrungs: Optional[float],
                   exam_grade: Optional[float] = None) -> Optional[float]:
    """Maturnote for exam subjects, Erfahrungsnote for the rest."""
    if curriculum.is_exam_subject(subject):
        return maturnote(erfahrungs, exam_grade)
    return erfahrungs


def decisive_grades(curriculum, semester_grades: Mapping[str, Mapping[int, float]],
                    exam_grades: Mapping[str, Optional[float]]):
    """
    semester_grades: {subject: {semester: grade}}
    exam_grades:     {subject: simulated exam grade}
    returns: {subject: decisive grade} for every subject that has one
    """
    result = {}
    for subject in curriculum.all_subjects:
        erf = erfahrungsnote(semester_grades.get(subject, {}))
        grade = decisive_grade(subject, curriculum, erf, exam_grades.get(subject))
        if grade is not None:
            result[subject] = grade
    return result


def overall_exam_average(erfahrungsnoten: Mapping[str, Optional[float]],
                         exam_grades: Mapping[str, Optional[float]]) -> Optional[float]:
    """Mean Maturnote over every subject with both an Erfahrungsnote and an exam grade."""
    notes = []
    for subject, exam in exam_grades.items():
        note = maturnote(erfahrungsnoten.get(subject), exam)
        if note is not None:
            notes.append(note)
    if not notes:
        return None
    return round_1dp_half_up(float(np.mean(notes)))
