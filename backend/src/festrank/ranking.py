from __future__ import annotations

from .domain import ParticipantScore, ProgramDescriptor, RankedResult
from .points import PointsPolicy, get_policy

GRADE_BANDS: list[tuple[float, str]] = [
    (90, "A+"),
    (70, "A"),
    (60, "B"),
    (50, "C"),
]


def _counted(mark: float | None) -> bool:
    return mark is not None and mark > 0


def final_mark(p: ParticipantScore) -> float:
    """採点ラウンド数に応じて0〜100のパーセンテージに正規化する。

    分母は参加者ごとに、実際に採点されたラウンドで決まる。
    """

    mark = p.mark or 0
    if _counted(p.mark3):
        total, max_mark = mark + (p.mark2 or 0) + p.mark3, 300
    elif _counted(p.mark2):
        total, max_mark = mark + p.mark2, 200
    else:
        total, max_mark = mark, 100
    return (total / max_mark) * 100


def grade_for(mark: float) -> str | None:
    for lower, grade in GRADE_BANDS:
        if mark >= lower:
            return grade
    return None


def competition_rank(marks: list[float]) -> list[int]:
    """降順に並んだ点数に順位を振る。

    同点は同順位、次の順位は位置どおりに飛ぶ（例: 1,1,3）。
    """

    ranks: list[int] = []
    for position, mark in enumerate(marks, start=1):
        if ranks and mark == marks[position - 2]:
            ranks.append(ranks[-1])
        else:
            ranks.append(position)
    return ranks


def compute_results(
    participants: list[ParticipantScore],
    program: ProgramDescriptor,
    policy: PointsPolicy | None = None,
) -> list[RankedResult]:
    policy = policy or get_policy()

    finished = [p for p in participants if p.status == "finished"]
    scored = sorted(
        ((p, final_mark(p)) for p in finished), key=lambda x: x[1], reverse=True
    )
    ranks = competition_rank([m for _, m in scored])

    results: list[RankedResult] = []
    for (participant, mark), rank in zip(scored, ranks):
        grade = grade_for(mark)
        results.append(
            RankedResult(
                code=participant.code,
                student=participant.student,
                final_mark=mark,
                rank=rank,
                grade=grade,
                rank_points=policy.rank_points(rank, program),
                grade_points=policy.grade_points(grade, program),
            )
        )
    return results
