# app/models/difficulty.py
# 난이도: 문자열 비교 대신 명시적 순서를 가진 enum
# 정의되지 않은(레거시) 값은 항상 맨 뒤로 정렬한다.

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class Difficulty(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    HARD = "Hard"

    @property
    def rank(self) -> int:
        return _ORDER.index(self)

    @classmethod
    def parse(cls, value: Any) -> Optional["Difficulty"]:
        try:
            return cls(value)
        except ValueError:
            return None


_ORDER = [Difficulty.BEGINNER, Difficulty.INTERMEDIATE, Difficulty.HARD]
UNKNOWN_RANK = len(_ORDER)


def difficulty_rank(value: Any) -> int:
    d = Difficulty.parse(value)
    return d.rank if d is not None else UNKNOWN_RANK


def rank_expression(field: str = "$difficulty") -> Dict[str, Any]:
    """
    집계 파이프라인용 순위 projection.
    {$cond: [{$eq: [field, "Beginner"]}, 0, {$cond: [... , UNKNOWN_RANK]}]}
    """
    expr: Any = UNKNOWN_RANK
    for d in reversed(_ORDER):
        expr = {"$cond": [{"$eq": [field, d.value]}, d.rank, expr]}
    return expr
