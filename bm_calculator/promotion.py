"""
Promotion rule for the Berufsmaturitaet.

A student is promoted when all three hold over the decisive grades:

1. overall average (unweighted, one decimal) >= 4.0
2. sum of shortfalls below 4.0 <= 2.0
3. at most two grades below 4.0

With fewer grades than the pool requires, no verdict is given (None).
"""
import math
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

import numpy as np

from bm_calculator.curriculum import (
    MAX_DEFICIT,
    MAX_FAILING_SUBJECTS,
    PASSING_GRADE,
    Curriculum,
)
from bm_calculator.grade_logic import erfahrungsnote, round_1dp_half_up, simulate_rounded_average


@dataclass(frozen=True)
class PromotionVerdict:
    overall_average: float
    deficit_sum: float
    failing_count: int
    passes_average: bool
    passes_deficit: bool
    passes_failing_count: bool

    @property
    def is_promoted(self) -> bool:
        return self.passes_average and self.passes_deficit and self.passes_failing_count


def evaluate_promotion(grades: Mapping[str, Optional[float]], min_subjects: int) -> Optional[PromotionVerdict]:
    """
    grades: {subject: decisive grade}; subjects without a grade are ignored
    min_subjects: number of graded subjects needed before a verdict is given
    """
    values = [float(g) for g in grades.values() if g is not None]
    if not values or len(values) < min_subjects:
        return None

    arr = np.array(values, dtype=float)
    overall = round_1dp_half_up(float(arr.mean()))
    deficit = math.fsum(max(0.0, PASSING_GRADE - g) for g in values)
    failing = int((arr < PASSING_GRADE).sum())

    return PromotionVerdict(
        overall_average=overall,
        deficit_sum=deficit,
        failing_count=failing,
        passes_average=overall >= PASSING_GRADE,
        passes_deficit=deficit <= MAX_DEFICIT,
        passes_failing_count=failing <= MAX_FAILING_SUBJECTS,
    )


def evaluate_final_promotion(curriculum: Curriculum,
                             decisive: Mapping[str, Optional[float]]) -> Optional[PromotionVerdict]:
    """Every curriculum subject counts and every one must have a decisive grade."""
    subjects = curriculum.all_subjects
    pool = {s: decisive.get(s) for s in subjects}
    return evaluate_promotion(pool, min_subjects=len(subjects))


def semester_pool(curriculum: Curriculum, semester: int):
    """Subjects taught in `semester`, interdisciplinary work excluded."""
    return [s for s in curriculum.subjects_for_semester(semester)
            if not curriculum.is_interdisciplinary(s)]


def evaluate_semester_promotion(curriculum: Curriculum, semester: int,
                                grades: Mapping[str, Optional[float]]) -> Optional[PromotionVerdict]:
    subjects = semester_pool(curriculum, semester)
    pool = {s: grades.get(s) for s in subjects}
    return evaluate_promotion(pool, min_subjects=len(subjects))


def latest_semester_grades(semester_grades: Mapping[str, Mapping[int, float]]) -> Dict[str, float]:
    """Grade of the most recent recorded semester, per subject."""
    latest = {}
    for subject, by_semester in semester_grades.items():
        recorded = {int(k): v for k, v in by_semester.items() if v is not None}
        if recorded:
            latest[subject] = recorded[max(recorded)]
    return latest


def simulated_semester_grades(book) -> Dict[str, float]:
    """Half-point simulated average (recorded + planned controls) per subject."""
    result = {}
    for subject in book.subjects:
        avg = simulate_rounded_average(book.controls(subject), book.planned(subject))
        if avg is not None:
            result[subject] = avg
    return result


def erfahrungsnoten(semester_grades: Mapping[str, Mapping[int, float]]) -> Dict[str, float]:
    result = {}
    for subject, by_semester in semester_grades.items():
        note = erfahrungsnote(by_semester)
        if note is not None:
            result[subject] = note
    return result
