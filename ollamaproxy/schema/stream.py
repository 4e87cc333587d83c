from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class BackendStreamFragment:
    delta_text: str = ""
    done: bool = False


@dataclass(frozen=True)
class SseEvent:
    delta_text: str = ""
    finish_reason: str | None = None
    # set only on the terminal "stream complete" marker
    is_terminal: bool = False

    @classmethod
    def delta(cls, text: str) -> SseEvent:
        return cls(delta_text=text)

    @classmethod
    def terminal(cls) -> SseEvent:
        return cls(is_terminal=True)
