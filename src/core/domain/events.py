"""
Event — запись event log

Immutable Pydantic модель события, эмитируемого контрактом.
Сериализованная форма (`to_record()`) соответствует JSON Schema
event_record.json.
"""

from typing import Any

from pydantic import BaseModel, Field

from .crocodile import ADDRESS_PATTERN


class Event(BaseModel):
    """
    Событие контракта.

    Примеры: EggsBought(buyer, count), CrocodileCreated(id),
    Transfer(from, to, id), Withdrawal(to, amount).
    """

    name: str = Field(..., min_length=1, description="Имя события")
    address: str = Field(..., pattern=ADDRESS_PATTERN, description="Контракт-эмитент")
    args: dict[str, Any] = Field(default_factory=dict, description="Аргументы события")
    block_number: int = Field(..., ge=0)
    log_index: int = Field(..., ge=0, description="Порядковый номер в event log")

    model_config = {"frozen": True}

    def to_record(self) -> dict[str, Any]:
        """JSON-совместимое представление для валидации и экспорта."""
        return self.model_dump()
