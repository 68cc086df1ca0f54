"""Data model for recorded and planned grades."""
import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import date as Date
from typing import Dict, Iterable, List, Optional, Tuple

from bm_calculator.curriculum import DEFAULT_SUBJECT_GOAL, DEFAULT_TRACK, SEMESTER_RANGE, get_curriculum
from bm_calculator.grade_logic import parse_weight

logger = logging.getLogger(__name__)

DUPLICATE_GRADE_TOLERANCE = 0.01


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class GradedControl:
    grade: float
    weight: float
    date: Optional[Date] = None
    label: Optional[str] = None
    display_weight: Optional[str] = None  # notation as entered, e.g. "1/2"
    id: str = field(default_factory=_new_id)


@dataclass(frozen=True)
class PlannedControl:
    grade: float
    weight: float
    id: str = field(default_factory=_new_id)


@dataclass(frozen=True)
class SubjectGradeSet:
    subject: str
    controls: Tuple[GradedControl, ...] = ()

    def with_control(self, control: GradedControl) -> "SubjectGradeSet":
        return replace(self, controls=self.controls + (control,))

    def without(self, control_id: str) -> "SubjectGradeSet":
        return replace(self, controls=tuple(c for c in self.controls if c.id != control_id))

    def __len__(self) -> int:
        return len(self.controls)

    def __iter__(self):
        return iter(self.controls)


@dataclass
class SemesterGradeRecord:
    subject: str
    grades: Dict[int, float] = field(default_factory=dict)

    def set_grade(self, semester: int, grade: float) -> None:
        if semester not in SEMESTER_RANGE:
            raise ValueError(f"Semester must be between 1 and 8 (got {semester}).")
        self.grades[semester] = float(grade)


@dataclass(frozen=True)
class SubjectGoal:
    subject: str
    target: float = DEFAULT_SUBJECT_GOAL


def is_duplicate(existing: Iterable[GradedControl], candidate: GradedControl,
                 match_label: bool = True) -> bool:
    """Same grade (within 0.01), same date and, unless disabled, same label."""
    for c in existing:
        if abs(c.grade - candidate.grade) >= DUPLICATE_GRADE_TOLERANCE:
            continue
        if c.date != candidate.date:
            continue
        if match_label and (c.label or None) != (candidate.label or None):
            continue
        return True
    return False


class GradeBook:
    """
    Caller-owned store of everything the calculators consume for one student.
    Accessors hand out tuples/copies, so calculator calls cannot alter it.
    """

    def __init__(self, track: str = DEFAULT_TRACK) -> None:
        self.curriculum = get_curriculum(track)
        self.track = self.curriculum.track
        self._sets: Dict[str, SubjectGradeSet] = {}
        self._planned: Dict[str, Tuple[PlannedControl, ...]] = {}
        self._semesters: Dict[str, SemesterGradeRecord] = {}
        self._goals: Dict[str, SubjectGoal] = {}
        self._exam_grades: Dict[str, float] = {}

    # ---- current-term controls ----
    @property
    def subjects(self) -> List[str]:
        names = list(self._sets)
        names.extend(s for s in self._planned if s not in self._sets)
        return names

    def grade_set(self, subject: str) -> SubjectGradeSet:
        return self._sets.get(subject, SubjectGradeSet(subject))

    def controls(self, subject: str) -> Tuple[GradedControl, ...]:
        return self.grade_set(subject).controls

    def add_control(self, subject: str, grade: float, weight=1, date: Optional[Date] = None,
                    label: Optional[str] = None, match_label: bool = True) -> Optional[GradedControl]:
        """
        Parse the weight and record a new control.
        Raises InvalidWeight; returns None when the control is a duplicate.
        """
        control = GradedControl(
            grade=float(grade),
            weight=parse_weight(weight),
            date=date,
            label=label,
            display_weight=str(weight),
        )
        current = self.grade_set(subject)
        if is_duplicate(current, control, match_label=match_label):
            logger.debug("Duplicate control skipped: %s %.2f %s %s", subject, control.grade, date, label)
            return None
        self._sets[subject] = current.with_control(control)
        logger.debug("Control added: %s %.2f x %g", subject, control.grade, control.weight)
        return control

    def remove_control(self, subject: str, control_id: str) -> bool:
        current = self.grade_set(subject)
        updated = current.without(control_id)
        if len(updated) == len(current):
            return False
        self._sets[subject] = updated
        return True

    # ---- planned controls ----
    def planned(self, subject: str) -> Tuple[PlannedControl, ...]:
        return self._planned.get(subject, ())

    def add_planned(self, subject: str, grade: float, weight=1) -> PlannedControl:
        plan = PlannedControl(grade=float(grade), weight=parse_weight(weight))
        self._planned[subject] = self.planned(subject) + (plan,)
        return plan

    def remove_planned(self, subject: str, plan_id: str) -> bool:
        current = self.planned(subject)
        updated = tuple(p for p in current if p.id != plan_id)
        if len(updated) == len(current):
            return False
        self._planned[subject] = updated
        return True

    # ---- past semesters ----
    def set_semester_grade(self, subject: str, semester: int, grade: float) -> None:
        record = self._semesters.setdefault(subject, SemesterGradeRecord(subject))
        record.set_grade(semester, grade)

    def semester_record(self, subject: str) -> Dict[int, float]:
        record = self._semesters.get(subject)
        return dict(record.grades) if record else {}

    def semester_grades(self) -> Dict[str, Dict[int, float]]:
        return {subject: dict(r.grades) for subject, r in self._semesters.items()}

    def set_exam_grade(self, subject: str, grade: Optional[float]) -> None:
        if grade is None:
            self._exam_grades.pop(subject, None)
        else:
            self._exam_grades[subject] = float(grade)

    @property
    def exam_grades(self) -> Dict[str, float]:
        return dict(self._exam_grades)

    # ---- goals ----
    def set_goal(self, subject: str, target: float) -> SubjectGoal:
        goal = SubjectGoal(subject, float(target))
        self._goals[subject] = goal
        return goal

    def goal_for(self, subject: str) -> float:
        goal = self._goals.get(subject)
        return goal.target if goal else DEFAULT_SUBJECT_GOAL
