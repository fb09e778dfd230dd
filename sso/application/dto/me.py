from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MeOutput:
    user_id: str
    name: str
    email: str
    avatar_url: str | None
    roles: tuple[str, ...]
    permissions: tuple[str, ...]
