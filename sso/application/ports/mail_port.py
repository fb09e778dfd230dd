from __future__ import annotations

from typing import Protocol


class MailPort(Protocol):
    def send(self, *, to: str, template: str, params: dict[str, str]) -> None:
        ...
