from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

Status = Literal["finished", "pending", "error"]


class ParticipantScore(BaseModel):
    code: str
    student: str
    mark: float | None = None
    mark2: float | None = None
    mark3: float | None = None
    status: Status

    @field_validator("code", "student", mode="before")
    @classmethod
    def _to_text(cls, v: object) -> str:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        if not isinstance(v, str):
            raise TypeError("must be a string")
        return v

    # mark2 / mark3 は0以下でも受け付け、集計時に無視する
    @field_validator("mark")
    @classmethod
    def _non_negative(cls, v: float | None) -> float | None:
        if v is not None and v < 0:
            raise ValueError("mark must not be negative")
        return v


class ProgramDescriptor(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int | str
    is_group: bool = Field(default=False, alias="isGroup")
    members: int | None = None
    name: str | None = None


class RankedResult(BaseModel):
    code: str
    student: str
    final_mark: float
    rank: int = Field(ge=1)
    grade: str | None
    rank_points: int = 0
    grade_points: int = 0

    @computed_field
    @property
    def points(self) -> int:
        return self.rank_points + self.grade_points


class AssignOutcome(BaseModel):
    success: bool
    message: str | None = None


class ResultsRequest(BaseModel):
    participants: list[ParticipantScore]
    program: ProgramDescriptor


class ResultsResponse(BaseModel):
    program_id: int | str
    ok: bool
    results: list[RankedResult]
