"""
Entropy sources для layEgg.

BlockEntropy использует ambient данные хоста (hash родительского блока,
timestamp, caller). Это НЕ криптографически стойкая случайность: участник
может предсказать результат. Для игровых предметов низкой ценности это
допустимо; источник инжектируется и может быть заменён на VRF.
"""

import hashlib
from typing import Iterable, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from src.core.host.chain import Chain


class EntropySource(Protocol):
    """Источник псевдослучайного 256-битного слова."""

    def random_word(self, chain: "Chain", salt: str) -> int:
        ...


class BlockEntropy:
    """Псевдослучайность из данных блока (аналог keccak(block.difficulty, timestamp, sender))."""

    def random_word(self, chain: "Chain", salt: str) -> int:
        seed = f"{chain.parent_hash}:{chain.timestamp}:{chain.msg.sender}:{salt}"
        return int.from_bytes(hashlib.sha3_256(seed.encode("utf-8")).digest(), "big")


class SequenceEntropy:
    """
    Детерминированная последовательность слов (для тестов).

    Значения выдаются по кругу.
    """

    def __init__(self, words: Iterable[int]):
        self._words = list(words)
        if not self._words:
            raise ValueError("SequenceEntropy requires at least one word")
        self._cursor = 0

    def random_word(self, chain: "Chain", salt: str) -> int:
        word = self._words[self._cursor % len(self._words)]
        self._cursor += 1
        return word
