import logging
import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Tuple

import pandas as pd

from bm_calculator.curriculum import SEMESTER_RANGE

logger = logging.getLogger(__name__)

SCAN_COLUMNS = ["subject", "grade", "weight", "date", "label"]
DATE_FORMATS = ("%d.%m.%Y", "%d.%m.%y", "%d/%m/%Y")


@dataclass(frozen=True)
class ScannedControl:
    subject: str
    grade: float
    weight: int
    date: Optional[date]
    label: str


# ------------------------
# Value normalisation
# ------------------------
def normalize_number(value) -> Optional[float]:
    """'4,5' -> 4.5; None for empty, non-numeric or non-finite input."""
    if value is None:
        return None
    if not isinstance(value, str) and pd.isna(value):
        return None
    cleaned = str(value).strip().replace(",", ".")
    if not cleaned:
        return None
    try:
        parsed = float(cleaned)
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None


def normalize_date(value) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) and pd.isna(value):
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    logger.debug("Unrecognised date %r, dropped", text)
    return None


def normalize_subject_name(name, valid_subjects) -> Optional[str]:
    """
    Map a free-text subject name from a scan onto a canonical subject.
    Returns None when the name cannot be resolved within `valid_subjects`.
    """
    if name is None:
        return None
    raw = str(name).strip()
    if not raw:
        return None

    # course codes such as "129-INP"
    if raw[0].isdigit():
        return None

    n = raw.lower()
    canon = None
    if n.startswith("idaf") or "interdisziplin" in n:
        canon = "Interdisziplinäres Arbeiten"
    elif n == "frw" or "finanz" in n:
        canon = "Finanz- und Rechnungswesen"
    elif n == "wr" or "wirtschaft und recht" in n:
        canon = "Wirtschaft und Recht"
    elif n.startswith("geschichte"):
        canon = "Geschichte und Politik"
    elif n.startswith("mathematik"):
        canon = "Mathematik"
    elif n.startswith("deutsch"):
        canon = "Deutsch"
    elif n.startswith("englisch"):
        canon = "Englisch"
    elif n.startswith("franz"):
        canon = "Französisch"
    elif "natur" in n:
        canon = "Naturwissenschaften"

    if canon:
        return canon if canon in valid_subjects else None

    candidate = re.sub(r"\s+", " ", raw)
    return candidate if candidate in valid_subjects else None


def _round_weight(value: Optional[float]) -> int:
    if value is None:
        return 1
    rounded = int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return max(1, rounded)


# ------------------------
# Control screenshots (current term)
# ------------------------
def _normalise_cols(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df.columns = [str(c).strip().lower() for c in df.columns]
    # the extraction prompt calls the description "name"
    if "name" in df.columns and "label" not in df.columns:
        df = df.rename(columns={"name": "label"})
    for col in SCAN_COLUMNS:
        if col not in df.columns:
            df[col] = None
    return df[SCAN_COLUMNS]


def read_scan_controls(result) -> pd.DataFrame:
    """
    result: the extraction JSON, either {"controls": [...]} or the list itself.
    """
    if isinstance(result, dict):
        records = list(result.get("controls") or [])
    else:
        records = list(result or [])
    bad = [r for r in records if not isinstance(r, dict)]
    if bad:
        raise ValueError(f"Scan controls must be objects (got {type(bad[0]).__name__}).")
    return _normalise_cols(pd.DataFrame.from_records(records))


def parse_scan_controls(df: pd.DataFrame, valid_subjects) -> List[ScannedControl]:
    rows = []
    for _, row in df.iterrows():
        canon = normalize_subject_name(row.get("subject"), valid_subjects)
        if canon is None:
            logger.debug("Unknown subject %r, dropped", row.get("subject"))
            continue
        grade = normalize_number(row.get("grade"))
        if grade is None or grade == 0:
            logger.debug("Skipping %s - no grade provided", canon)
            continue
        label = row.get("label")
        rows.append(ScannedControl(
            subject=canon,
            grade=grade,
            weight=_round_weight(normalize_number(row.get("weight"))),
            date=normalize_date(row.get("date")),
            label="" if label is None or (not isinstance(label, str) and pd.isna(label)) else str(label),
        ))
    return rows


def import_scan_controls(book, result) -> List[ScannedControl]:
    """Add scanned controls to `book`; a control with the same date and grade is skipped."""
    scanned = parse_scan_controls(read_scan_controls(result), book.curriculum.valid_subjects)
    added = []
    for sc in scanned:
        control = book.add_control(sc.subject, sc.grade, sc.weight, date=sc.date,
                                   label=sc.label, match_label=False)
        if control is not None:
            added.append(sc)
    logger.info("Scan import: %d control(s) added, %d skipped", len(added), len(scanned) - len(added))
    return added


# ------------------------
# Report cards (past semesters)
# ------------------------
def parse_bulletin_scan(result: dict, valid_subjects,
                        current_semester: int) -> List[Tuple[int, Dict[str, float]]]:
    """
    Accepts {"semester": 3, "grades": {...}} or {"semesters": [{"semester": 3, "grades": {...}}, ...]}.
    returns: [(semester, {canonical subject: grade}), ...] for semesters with at least one grade
    """
    semesters = result.get("semesters")
    if not semesters:
        if result.get("grades"):
            semesters = [{"semester": result.get("semester"), "grades": result["grades"]}]
        else:
            semesters = []

    parsed = []
    for entry in semesters:
        raw = entry.get("semester")
        number = float(current_semester) if raw is None else normalize_number(raw)
        if number is None or not number.is_integer():
            logger.warning("Report card semester %r is not a whole number, ignored", raw)
            continue
        semester = int(number)
        if semester not in SEMESTER_RANGE:
            logger.warning("Report card semester %r outside 1-8, ignored", entry.get("semester"))
            continue

        mapped = {}
        for subject, value in (entry.get("grades") or {}).items():
            canon = normalize_subject_name(subject, valid_subjects)
            if canon is None:
                continue
            grade = normalize_number(value)
            if grade is not None:
                mapped[canon] = grade

        if mapped:
            parsed.append((semester, mapped))
    return parsed


def import_bulletin_scan(book, result: dict, current_semester: int) -> List[Tuple[int, Dict[str, float]]]:
    parsed = parse_bulletin_scan(result, book.curriculum.valid_subjects, current_semester)
    for semester, grades in parsed:
        for subject, grade in grades.items():
            book.set_semester_grade(subject, semester, grade)
    logger.info("Report card import: %d semester(s) written", len(parsed))
    return parsed
