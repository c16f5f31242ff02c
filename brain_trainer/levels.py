from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType


class ItemType(str, Enum):
    LETTERS = "letters"
    WORDS = "words"
    MIXED = "mixed"


class MathType(str, Enum):
    ADDITION = "addition"
    MIXED_BASIC = "mixed_basic"
    MULTIPLICATION = "multiplication"
    ALL = "all"


@dataclass(frozen=True, slots=True)
class LevelConfig:
    name: str
    sequence_length: int
    math_type: MathType
    math_range: tuple[int, int]
    item_type: ItemType
    math_time_s: float
    memory_time_s: float

    @property
    def label(self) -> str:
        return f"{self.sequence_length} items - {self.math_type.value.replace('_', ' ')}"


LEVELS: Mapping[int, LevelConfig] = MappingProxyType(
    {
        1: LevelConfig("Beginner", 3, MathType.ADDITION, (1, 10), ItemType.LETTERS, 8.0, 2.0),
        2: LevelConfig("Easy", 4, MathType.ADDITION, (5, 20), ItemType.LETTERS, 7.0, 2.0),
        3: LevelConfig("Medium", 5, MathType.MIXED_BASIC, (10, 30), ItemType.LETTERS, 6.0, 1.5),
        4: LevelConfig("Hard", 6, MathType.MIXED_BASIC, (10, 50), ItemType.WORDS, 6.0, 2.0),
        5: LevelConfig("Expert", 7, MathType.MULTIPLICATION, (2, 12), ItemType.WORDS, 5.0, 1.5),
        6: LevelConfig("Master", 8, MathType.ALL, (10, 100), ItemType.MIXED, 5.0, 1.5),
    }
)

MIN_LEVEL = min(LEVELS)
MAX_LEVEL = max(LEVELS)


def level_config(level: int) -> LevelConfig:
    try:
        return LEVELS[int(level)]
    except KeyError:
        raise ValueError(f"level must be in [{MIN_LEVEL}, {MAX_LEVEL}]") from None
