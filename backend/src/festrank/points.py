from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from loguru import logger
from pydantic import BaseModel, Field, model_validator

from .domain import ProgramDescriptor


class PointsTable(BaseModel):
    rank: dict[int, int]
    grade: dict[str, int]


class PointsPolicy(BaseModel):
    """採点ポリシー。

    テーブル選択の優先順位は 特別プログラムID > グループ人数 > 個人 の順。
    """

    special_program_ids: list[str] = Field(default_factory=list)
    special: str = "special"
    group_tables: dict[int, str] = Field(default_factory=dict)
    group_default: str
    individual_default: str
    tables: dict[str, PointsTable]

    @model_validator(mode="after")
    def _check_table_keys(self) -> "PointsPolicy":
        referenced = {self.group_default, self.individual_default, *self.group_tables.values()}
        if self.special_program_ids:
            referenced.add(self.special)
        missing = sorted(k for k in referenced if k not in self.tables)
        if missing:
            raise ValueError(f"unknown points tables: {', '.join(missing)}")
        return self

    def table_key(self, program: ProgramDescriptor) -> str:
        if str(program.id) in self.special_program_ids:
            return self.special
        if program.is_group:
            return self.group_tables.get(program.members, self.group_default)
        return self.individual_default

    def table_for(self, program: ProgramDescriptor) -> PointsTable:
        return self.tables[self.table_key(program)]

    def rank_points(self, rank: int, program: ProgramDescriptor) -> int:
        if rank > 3:
            return 0
        return self.table_for(program).rank.get(rank, 0)

    def grade_points(self, grade: str | None, program: ProgramDescriptor) -> int:
        if not grade:
            return 0
        return self.table_for(program).grade.get(grade, 0)


# 点数は運営側のルール確定値に合わせて POINTS_POLICY_PATH で差し替える
DEFAULT_POLICY = PointsPolicy(
    special_program_ids=["99", "101"],
    group_tables={2: "group_2", 3: "group_3_4", 4: "group_3_4", 5: "group_5"},
    group_default="group_other",
    individual_default="individual",
    tables={
        "special": PointsTable(
            rank={1: 20, 2: 15, 3: 10},
            grade={"A+": 35, "A": 30, "B": 20, "C": 10},
        ),
        "group_2": PointsTable(
            rank={1: 8, 2: 6, 3: 4},
            grade={"A+": 12, "A": 10, "B": 8, "C": 6},
        ),
        "group_3_4": PointsTable(
            rank={1: 10, 2: 8, 3: 6},
            grade={"A+": 15, "A": 13, "B": 11, "C": 9},
        ),
        "group_5": PointsTable(
            rank={1: 12, 2: 10, 3: 8},
            grade={"A+": 18, "A": 15, "B": 13, "C": 11},
        ),
        "group_other": PointsTable(
            rank={1: 15, 2: 12, 3: 10},
            grade={"A+": 20, "A": 17, "B": 15, "C": 13},
        ),
        "individual": PointsTable(
            rank={1: 5, 2: 3, 3: 1},
            grade={"A+": 8, "A": 5, "B": 3, "C": 1},
        ),
    },
)


def load_policy(path: str | Path) -> PointsPolicy:
    policy = PointsPolicy.model_validate_json(Path(path).read_text(encoding="utf-8"))
    logger.info(f"Loaded points policy from {path} ({len(policy.tables)} tables)")
    return policy


@lru_cache(maxsize=1)
def get_policy() -> PointsPolicy:
    path = os.environ.get("POINTS_POLICY_PATH", "").strip()
    if not path:
        return DEFAULT_POLICY
    return load_policy(path)
