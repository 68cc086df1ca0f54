import pytest

from bm_calculator.curriculum import get_curriculum
from bm_calculator.models import GradeBook


@pytest.fixture()
def tal():
    return get_curriculum("TAL")


@pytest.fixture()
def dl():
    return get_curriculum("DL")


@pytest.fixture()
def book():
    return GradeBook("TAL")
