from __future__ import annotations

import pytest

from festrank.domain import ParticipantScore, ProgramDescriptor
from festrank.points import DEFAULT_POLICY
from festrank.ranking import competition_rank, compute_results, final_mark, grade_for


def _p(code: str, mark: float, mark2: float | None = None, mark3: float | None = None, status: str = "finished"):
    return ParticipantScore(
        code=code, student=f"S-{code}", mark=mark, mark2=mark2, mark3=mark3, status=status
    )


def test_final_mark_single_round():
    """1ラウンドのみなら点数がそのまま割合になる。"""

    assert final_mark(_p("a", 95, 0, 0)) == 95


def test_final_mark_uses_each_participants_own_rounds():
    """分母は参加者ごとの採点ラウンド数で決まる。"""

    assert final_mark(_p("a", 80, 70)) == 75
    assert final_mark(_p("b", 90, 60, 90)) == pytest.approx(80)
    assert final_mark(_p("c", 60)) == 60
    # mark2 が未採点でも mark3 があれば3ラウンド扱い
    assert final_mark(_p("d", 90, None, 90)) == pytest.approx(60)


def test_final_mark_treats_missing_mark_as_zero():
    """mark が null の場合は0点として扱う。"""

    p = ParticipantScore(code="x", student="S1", mark=None, mark2=50, status="finished")
    assert final_mark(p) == 25


def test_grade_boundaries():
    """各帯の下限を含む。"""

    assert grade_for(100) == "A+"
    assert grade_for(90) == "A+"
    assert grade_for(89.999) == "A"
    assert grade_for(70) == "A"
    assert grade_for(60) == "B"
    assert grade_for(50) == "C"
    assert grade_for(49.999) is None
    assert grade_for(0) is None


def test_competition_rank_skips_after_ties():
    """同点は同順位、次は位置どおり（1,1,3）。"""

    assert competition_rank([80, 80, 75]) == [1, 1, 3]
    assert competition_rank([90, 85, 85, 85, 70, 70, 10]) == [1, 2, 2, 2, 5, 5, 7]
    assert competition_rank([]) == []


def test_compute_results_excludes_unfinished():
    """finished 以外は順位計算に含めない。"""

    participants = [
        _p("a", 50),
        _p("b", 99, status="pending"),
        _p("c", 70),
        _p("d", 100, status="error"),
    ]
    program = ProgramDescriptor(id=1, isGroup=0)

    results = compute_results(participants, program, DEFAULT_POLICY)
    assert [r.code for r in results] == ["c", "a"]
    assert [r.rank for r in results] == [1, 2]


def test_compute_results_ties_share_rank_and_points():
    """同点の参加者は順位も点数も同じになる。"""

    participants = [_p("a", 80), _p("b", 80), _p("c", 75)]
    program = ProgramDescriptor(id=1, isGroup=0)

    results = compute_results(participants, program, DEFAULT_POLICY)
    assert [r.rank for r in results] == [1, 1, 3]
    assert results[0].points == results[1].points
    # 同点は入力順を保つ
    assert [r.code for r in results] == ["a", "b", "c"]


def test_compute_results_individual_points():
    """個人の1位・A+ は順位点と評価点の合計。"""

    participants = [_p("a", 95, 0, 0), _p("b", 40)]
    program = ProgramDescriptor(id=7, isGroup=0)

    results = compute_results(participants, program, DEFAULT_POLICY)
    top = results[0]
    table = DEFAULT_POLICY.tables["individual"]
    assert top.final_mark == 95
    assert top.grade == "A+"
    assert top.points == table.rank[1] + table.grade["A+"]

    # 2位・評価なしは順位点のみ
    assert results[1].grade is None
    assert results[1].points == table.rank[2]


def test_compute_results_rank_points_stop_after_third():
    """4位以下は順位点が付かない。"""

    participants = [_p(str(i), 100 - i * 10) for i in range(6)]
    program = ProgramDescriptor(id=7, isGroup=0)

    results = compute_results(participants, program, DEFAULT_POLICY)
    assert [r.rank_points for r in results] == [5, 3, 1, 0, 0, 0]
    assert [r.grade for r in results] == ["A+", "A+", "A", "A", "B", "C"]


@pytest.mark.parametrize(
    ("marks", "expected"),
    [
        ((100, 100, 100), 100),
        ((100, 100, None), 100),
        ((100, None, None), 100),
        ((0, 0, 0), 0),
        ((100, 0, 50), 50),
        ((0, 100, None), 50),
    ],
)
def test_final_mark_stays_within_percentage_range(marks, expected):
    """ラウンド数によらず0〜100に収まる。"""

    mark, mark2, mark3 = marks
    value = final_mark(_p("a", mark, mark2, mark3))
    assert 0 <= value <= 100
    assert value == pytest.approx(expected)
