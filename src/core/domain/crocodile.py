"""
Crocodile — Модель уникального актива

Immutable Pydantic снапшот крокодила для read-view `get_crocodile()`.
Сам контракт хранит изменяемую запись в storage; наружу отдаётся только
frozen копия.
"""

from typing import Final

from pydantic import BaseModel, Field


# Формат адреса: 0x + 40 hex (lowercase)
ADDRESS_PATTERN: Final[str] = "^0x[0-9a-f]{40}$"

ZERO_ADDRESS: Final[str] = "0x" + "0" * 40


class Crocodile(BaseModel):
    """
    Снапшот крокодила.

    Lifecycle: absent → created (create) → laying cycle → burned (sell).
    last_laid_at == 0 означает, что крокодил ещё ни разу не откладывал яйца.
    """

    id: int = Field(..., ge=1, description="Монотонный идентификатор (с 1)")
    owner: str = Field(..., pattern=ADDRESS_PATTERN, description="Текущий владелец")
    created_at: int = Field(..., ge=0, description="Timestamp создания (секунды)")
    last_laid_at: int = Field(0, ge=0, description="Timestamp последней кладки (0 = никогда)")

    model_config = {"frozen": True}

    def next_laying_at(self, cooldown_seconds: int) -> int:
        """
        Ближайший timestamp, когда кладка разрешена.

        Args:
            cooldown_seconds: Минимальный интервал между кладками

        Returns:
            0 для первой кладки, иначе last_laid_at + cooldown
        """
        if self.last_laid_at == 0:
            return 0
        return self.last_laid_at + cooldown_seconds
