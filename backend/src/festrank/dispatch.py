from __future__ import annotations

from loguru import logger

from .assigners import ResultAssigner
from .domain import ParticipantScore, ProgramDescriptor, RankedResult
from .points import PointsPolicy
from .ranking import compute_results


def target_student_ids(student: str, is_group: bool) -> list[str]:
    """保存対象の学生IDを返す。グループは代表（先頭）の1名のみ。"""

    ids = [s.strip() for s in student.split(",") if s.strip()]
    if is_group:
        return ids[:1]
    return ids


async def dispatch_results(
    results: list[RankedResult],
    program: ProgramDescriptor,
    assigner: ResultAssigner,
) -> bool:
    graded = [r for r in results if r.points > 0]
    logger.info(f"Saving {len(graded)} graded results for program {program.id}")

    all_saved = True
    for result in graded:
        student_ids = target_student_ids(result.student, program.is_group)
        if not student_ids:
            logger.warning(f"Entry {result.code} has no student ids, skipped")
            continue

        for student_id in student_ids:
            logger.debug(
                f"Saving result for {student_id}: rank={result.rank} "
                f"grade={result.grade} points={result.points}"
            )
            try:
                outcome = await assigner.assign(
                    result.code,
                    student_id,
                    program.id,
                    str(result.rank),
                    result.grade,
                    result.points,
                )
            except Exception as e:
                logger.error(f"Error saving result for {student_id}: {e}")
                all_saved = False
                continue

            if not outcome.success:
                logger.error(
                    f"Failed to save result for {student_id}: {outcome.message or 'no detail'}"
                )
                all_saved = False

    return all_saved


async def generate_final_results(
    participants: list[ParticipantScore],
    program: ProgramDescriptor,
    assigner: ResultAssigner,
    policy: PointsPolicy | None = None,
) -> bool:
    results = compute_results(participants, program, policy)
    return await dispatch_results(results, program, assigner)
