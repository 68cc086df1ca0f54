import json

import pytest

from bm_calculator.curriculum import (
    UnknownTrack,
    curriculum_from_dict,
    get_curriculum,
    load_curriculum,
)


def test_tracks(tal, dl):
    assert len(tal.all_subjects) == 8
    assert len(dl.all_subjects) == 8
    assert tal.all_subjects[0] == "Deutsch"
    assert tal.all_subjects[-1] == "Interdisziplinäres Arbeiten"
    assert "Naturwissenschaften" in tal.valid_subjects
    assert "Naturwissenschaften" not in dl.valid_subjects


def test_lektionentafel(tal, dl):
    assert tal.semesters_for("Französisch") == (1, 2, 3)
    assert dl.semesters_for("Mathematik") == (1, 2, 3, 4)
    assert tal.semesters_for("Sport") == ()
    assert dl.subjects_for_semester(8) == [
        "Deutsch",
        "Englisch",
        "Finanz- und Rechnungswesen",
        "Interdisziplinäres Arbeiten",
    ]


def test_exam_subjects(tal, dl):
    assert tal.is_exam_subject("Naturwissenschaften")
    assert not tal.is_exam_subject("Wirtschaft und Recht")
    assert dl.is_exam_subject("Wirtschaft und Recht")
    assert tal.is_interdisciplinary("Interdisziplinäres Arbeiten")
    assert not tal.is_interdisciplinary("Deutsch")


def test_get_curriculum_is_case_insensitive():
    assert get_curriculum(" dl ").track == "DL"
    with pytest.raises(UnknownTrack):
        get_curriculum("GESO")


def test_load_curriculum(tmp_path):
    path = tmp_path / "curriculum.json"
    path.write_text(json.dumps({
        "track": "GS",
        "categories": {
            "grundlagen": ["Deutsch", "Mathematik"],
            "interdisziplinar": ["Interdisziplinäres Arbeiten"],
        },
        "lektionentafel": {
            "Deutsch": [1, 2],
            "Mathematik": [1],
            "Interdisziplinäres Arbeiten": [1, 2],
        },
        "exam_subjects": ["Deutsch"],
    }), encoding="utf-8")

    c = load_curriculum(path)
    assert c.track == "GS"
    assert c.all_subjects == ["Deutsch", "Mathematik", "Interdisziplinäres Arbeiten"]
    assert c.subjects_for_semester(2) == ["Deutsch", "Interdisziplinäres Arbeiten"]
    assert c.is_exam_subject("Deutsch")


@pytest.mark.parametrize("data", [
    {"track": "X", "categories": {}},
    {"track": "X", "categories": {"sport": ["Sport"]}, "lektionentafel": {}},
    {"track": "X", "categories": {"grundlagen": ["Deutsch"]}, "lektionentafel": {"Deutsch": [9]}},
])
def test_curriculum_from_dict_rejects_malformed(data):
    with pytest.raises(ValueError):
        curriculum_from_dict(data)


def test_curriculum_tables_are_read_only(tal):
    with pytest.raises(TypeError):
        tal.lektionentafel["Deutsch"] = ()
    with pytest.raises(TypeError):
        tal.categories["grundlagen"] = ()
    assert tal.semesters_for("Deutsch") == (1, 2, 5, 6, 7, 8)


def test_curriculum_is_hashable(tal, dl):
    assert len({tal, dl, get_curriculum("TAL")}) == 2


def test_loaded_curriculum_is_read_only():
    c = curriculum_from_dict({
        "track": "X",
        "categories": {"grundlagen": ["Deutsch"]},
        "lektionentafel": {"Deutsch": [1]},
    })
    with pytest.raises(TypeError):
        c.lektionentafel["Deutsch"] = (2,)
    hash(c)
