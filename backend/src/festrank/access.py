from __future__ import annotations

import json
import os
from enum import Enum

ROLES = ("admin", "campus", "judge", "report", "announce", "award", "result")

# 先頭一致した最初のプレフィックスで判定する
PROTECTED_ROUTES: dict[str, list[str]] = {
    "/campus": ["admin"],
    "/judgment": ["admin", "judge"],
    "/topics": ["admin", "judge"],
    "/judge": ["admin", "judge"],
    "/results": ["admin", "announce"],
    "/announcement": ["admin", "announce"],
    "/students": ["campus"],
    "/registration": ["admin", "report"],
    "/award": ["admin", "award", "result"],
    "/programs": ["admin", "campus"],
    "/api/results": ["admin", "announce"],
    "/api/points-policy": ["admin", "announce", "judge"],
}


class AccessDecision(str, Enum):
    ALLOW = "allow"
    LOGIN = "login"
    FORBIDDEN = "forbidden"


class InvalidAccessCookie(ValueError):
    pass


def cookie_name() -> str:
    brand = os.environ.get("BRAND_NAME", "festrank").strip() or "festrank"
    return f"{brand}-access"


def parse_role(cookie_value: str | None) -> str | None:
    if cookie_value is None:
        return None
    try:
        data = json.loads(cookie_value)
    except json.JSONDecodeError as e:
        raise InvalidAccessCookie(str(e)) from e
    if not isinstance(data, dict):
        raise InvalidAccessCookie("access cookie must be a JSON object")
    role = data.get("role")
    return role if isinstance(role, str) and role else None


def matching_route(path: str) -> str | None:
    for prefix in PROTECTED_ROUTES:
        if path.startswith(prefix):
            return prefix
    return None


def authorize(path: str, role: str | None) -> AccessDecision:
    prefix = matching_route(path)
    if prefix is None:
        return AccessDecision.ALLOW
    if role is None:
        return AccessDecision.LOGIN
    if role not in PROTECTED_ROUTES[prefix]:
        return AccessDecision.FORBIDDEN
    return AccessDecision.ALLOW
