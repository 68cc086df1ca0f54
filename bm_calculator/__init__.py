from bm_calculator.curriculum import Curriculum, get_curriculum, load_curriculum
from bm_calculator.grade_logic import (
    InvalidWeight,
    erfahrungsnote,
    maturnote,
    parse_weight,
    required_exam_grade,
    required_grade,
    rounded_average,
    weighted_average,
)
from bm_calculator.models import GradeBook, GradedControl, PlannedControl, is_duplicate
from bm_calculator.promotion import PromotionVerdict, evaluate_promotion

__version__ = "0.1.0"
