from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class EmbeddingBatch:
    model: str
    inputs: tuple[str, ...]


@dataclass(frozen=True)
class EmbeddingResult:
    index: int
    vector: list[float] = field(default_factory=list)
