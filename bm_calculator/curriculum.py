"""
Curriculum tables for the Berufsmaturitaet tracks.

Read-only configuration: which subjects a track has, in which semesters
each subject is taught (Lektionentafel) and which subjects end with a
final exam.
"""
import json
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import FrozenSet, List, Mapping, Tuple

# ------------------------
# Grading constants
# ------------------------
MIN_GRADE = 1.0
MAX_GRADE = 6.0
PASSING_GRADE = 4.0
MAX_DEFICIT = 2.0
MAX_FAILING_SUBJECTS = 2
DEFAULT_SUBJECT_GOAL = 5.0
DEFAULT_TRACK = "TAL"
SEMESTER_RANGE = range(1, 9)

CATEGORIES = ("grundlagen", "schwerpunkt", "erganzung", "interdisziplinar")
INTERDISCIPLINARY = "interdisziplinar"


class UnknownTrack(KeyError):
    pass


@dataclass(frozen=True)
class Curriculum:
    track: str
    categories: Mapping[str, Tuple[str, ...]] = field(hash=False)
    lektionentafel: Mapping[str, Tuple[int, ...]] = field(hash=False)
    exam_subjects: FrozenSet[str] = frozenset()

    def __post_init__(self):
        # read-only views, the module-level tracks are shared
        for name in ("categories", "lektionentafel"):
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))

    @property
    def all_subjects(self) -> List[str]:
        """Subjects in category order (grundlagen first, interdisziplinar last)."""
        return [s for cat in CATEGORIES for s in self.categories.get(cat, ())]

    @property
    def valid_subjects(self) -> FrozenSet[str]:
        return frozenset(self.all_subjects)

    def semesters_for(self, subject: str) -> Tuple[int, ...]:
        return self.lektionentafel.get(subject, ())

    def subjects_for_semester(self, semester: int) -> List[str]:
        return [s for s in self.all_subjects if semester in self.semesters_for(s)]

    def is_exam_subject(self, subject: str) -> bool:
        return subject in self.exam_subjects

    def is_interdisciplinary(self, subject: str) -> bool:
        return subject in self.categories.get(INTERDISCIPLINARY, ())


TAL = Curriculum(
    track="TAL",
    categories={
        "grundlagen": ("Deutsch", "Englisch", "Französisch", "Mathematik"),
        "schwerpunkt": ("Naturwissenschaften",),
        "erganzung": ("Geschichte und Politik", "Wirtschaft und Recht"),
        "interdisziplinar": ("Interdisziplinäres Arbeiten",),
    },
    lektionentafel={
        "Deutsch": (1, 2, 5, 6, 7, 8),
        "Englisch": (3, 4, 5, 6, 7, 8),
        "Französisch": (1, 2, 3),
        "Mathematik": (1, 2, 3, 4, 5, 6, 7, 8),
        "Naturwissenschaften": (3, 4, 5, 6, 7, 8),
        "Geschichte und Politik": (4, 5, 6),
        "Wirtschaft und Recht": (1, 2),
        "Interdisziplinäres Arbeiten": (1, 2, 3, 4, 5, 6, 7, 8),
    },
    exam_subjects=frozenset(
        ["Deutsch", "Englisch", "Französisch", "Mathematik", "Naturwissenschaften"]
    ),
)

DL = Curriculum(
    track="DL",
    categories={
        "grundlagen": ("Deutsch", "Englisch", "Französisch", "Mathematik"),
        "schwerpunkt": ("Finanz- und Rechnungswesen", "Wirtschaft und Recht"),
        "erganzung": ("Geschichte und Politik",),
        "interdisziplinar": ("Interdisziplinäres Arbeiten",),
    },
    lektionentafel={
        "Deutsch": (1, 2, 5, 6, 7, 8),
        "Englisch": (3, 4, 5, 6, 7, 8),
        "Französisch": (1, 2, 3),
        "Mathematik": (1, 2, 3, 4),
        "Finanz- und Rechnungswesen": (3, 4, 5, 6, 7, 8),
        "Wirtschaft und Recht": (1, 2),
        "Geschichte und Politik": (4, 5, 6),
        "Interdisziplinäres Arbeiten": (1, 2, 3, 4, 5, 6, 7, 8),
    },
    exam_subjects=frozenset(
        [
            "Deutsch",
            "Englisch",
            "Französisch",
            "Mathematik",
            "Finanz- und Rechnungswesen",
            "Wirtschaft und Recht",
        ]
    ),
)

TRACKS = {
    "TAL": TAL,
    "DL": DL,
}


def get_curriculum(track: str = DEFAULT_TRACK) -> Curriculum:
    key = str(track).strip().upper()
    if key not in TRACKS:
        raise UnknownTrack(f"Unknown BM track {track!r}. Expected one of: {sorted(TRACKS)}.")
    return TRACKS[key]


def curriculum_from_dict(data: dict) -> Curriculum:
    """
    Build a Curriculum from a plain dict:

        {"track": "TAL",
         "categories": {"grundlagen": [...], ...},
         "lektionentafel": {"Deutsch": [1, 2], ...},
         "exam_subjects": [...]}
    """
    required = {"track", "categories", "lektionentafel"}
    missing = required - set(data)
    if missing:
        raise ValueError(f"Missing curriculum keys: {sorted(missing)}.")

    unknown = set(data["categories"]) - set(CATEGORIES)
    if unknown:
        raise ValueError(f"Unknown subject categories: {sorted(unknown)}.")

    categories = {cat: tuple(subjects) for cat, subjects in data["categories"].items()}
    lektionentafel = {}
    for subject, semesters in data["lektionentafel"].items():
        semesters = tuple(int(s) for s in semesters)
        bad = [s for s in semesters if s not in SEMESTER_RANGE]
        if bad:
            raise ValueError(f"{subject}: semesters out of range 1-8 (got {bad}).")
        lektionentafel[subject] = semesters

    return Curriculum(
        track=str(data["track"]),
        categories=categories,
        lektionentafel=lektionentafel,
        exam_subjects=frozenset(data.get("exam_subjects", [])),
    )


def load_curriculum(path) -> Curriculum:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return curriculum_from_dict(data)
