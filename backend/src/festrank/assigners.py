from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol

import boto3
import httpx

from .domain import AssignOutcome


class ResultAssigner(Protocol):
    async def assign(
        self,
        code: str,
        student_id: str,
        program_id: int | str,
        rank: str,
        grade: str | None,
        points: int,
    ) -> AssignOutcome: ...


@dataclass(frozen=True)
class AssignCall:
    code: str
    student_id: str
    program_id: int | str
    rank: str
    grade: str | None
    points: int


@dataclass
class InMemoryResultAssigner(ResultAssigner):
    calls: list[AssignCall] = field(default_factory=list)
    failing_students: set[str] = field(default_factory=set)
    raising_students: set[str] = field(default_factory=set)

    async def assign(
        self,
        code: str,
        student_id: str,
        program_id: int | str,
        rank: str,
        grade: str | None,
        points: int,
    ) -> AssignOutcome:
        self.calls.append(AssignCall(code, student_id, program_id, rank, grade, points))
        if student_id in self.raising_students:
            raise ConnectionError(f"result service unreachable for {student_id}")
        if student_id in self.failing_students:
            return AssignOutcome(success=False, message="rejected")
        return AssignOutcome(success=True)

    @property
    def student_ids(self) -> list[str]:
        return [c.student_id for c in self.calls]


@dataclass
class HttpResultAssigner(ResultAssigner):
    base_url: str
    timeout: float = 30.0
    transport: httpx.AsyncBaseTransport | None = None

    @classmethod
    def from_env(cls) -> "HttpResultAssigner":
        base_url = os.environ.get("RESULT_SERVICE_URL", "").strip()
        if not base_url:
            raise RuntimeError("RESULT_SERVICE_URL is required for http result backend")
        timeout = float(os.environ.get("RESULT_SERVICE_TIMEOUT", "30"))
        return cls(base_url=base_url.rstrip("/"), timeout=timeout)

    async def assign(
        self,
        code: str,
        student_id: str,
        program_id: int | str,
        rank: str,
        grade: str | None,
        points: int,
    ) -> AssignOutcome:
        payload = {
            "code": code,
            "studentId": student_id,
            "programId": program_id,
            "rank": rank,
            "grade": grade,
            "points": points,
        }
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            resp = await client.post(f"{self.base_url}/assign-result", json=payload)
            resp.raise_for_status()
            return AssignOutcome.model_validate(resp.json())


@dataclass
class DynamoDBResultAssigner(ResultAssigner):
    table_name: str

    @classmethod
    def from_env(cls) -> "DynamoDBResultAssigner":
        table_name = os.environ.get("DDB_TABLE_NAME", "")
        if not table_name:
            raise RuntimeError("DDB_TABLE_NAME is required for dynamodb result backend")
        return cls(table_name=table_name)

    @property
    def _table(self):
        ddb = boto3.resource("dynamodb")
        return ddb.Table(self.table_name)

    def _put(self, call: AssignCall) -> None:
        # sk: RESULT#{student_id}#{code}
        self._table.put_item(
            Item={
                "pk": f"PROGRAM#{call.program_id}",
                "sk": f"RESULT#{call.student_id}#{call.code}",
                "rank": call.rank,
                "grade": call.grade,
                "points": int(call.points),
                "assigned_at": _now().isoformat(),
            }
        )

    async def assign(
        self,
        code: str,
        student_id: str,
        program_id: int | str,
        rank: str,
        grade: str | None,
        points: int,
    ) -> AssignOutcome:
        call = AssignCall(code, student_id, program_id, rank, grade, points)
        await asyncio.to_thread(self._put, call)
        return AssignOutcome(success=True)


def build_assigner() -> ResultAssigner:
    kind = os.environ.get("RESULT_BACKEND", "inmemory").strip().lower()
    if kind == "dynamodb":
        return DynamoDBResultAssigner.from_env()
    if kind == "http":
        return HttpResultAssigner.from_env()
    return InMemoryResultAssigner()


def _now() -> datetime:
    return datetime.now(timezone.utc)
