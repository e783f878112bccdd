"""
Checkpoints — история значений по блокам

Источник snapshot-веса голосов: баланс крокодилов аккаунта и total supply
записываются при каждом изменении вместе с номером блока. Поиск значения
на конец блока N — бинарный поиск (bisect).
"""

from bisect import bisect_right
from dataclasses import dataclass, field


@dataclass
class Checkpoints:
    """Монотонная по блокам история int-значения."""

    blocks: list[int] = field(default_factory=list)
    values: list[int] = field(default_factory=list)

    def push(self, block_number: int, value: int) -> None:
        """
        Запись нового значения.

        Несколько изменений в одном блоке схлопываются в один checkpoint.
        """
        if self.blocks and block_number < self.blocks[-1]:
            raise ValueError(
                f"Checkpoint block {block_number} is older than last {self.blocks[-1]}"
            )
        if self.blocks and self.blocks[-1] == block_number:
            self.values[-1] = value
        else:
            self.blocks.append(block_number)
            self.values.append(value)

    def latest(self) -> int:
        return self.values[-1] if self.values else 0

    def upper_lookup(self, block_number: int) -> int:
        """Значение на конец блока block_number (0 до первого checkpoint)."""
        index = bisect_right(self.blocks, block_number)
        return self.values[index - 1] if index else 0

    def __len__(self) -> int:
        return len(self.blocks)
