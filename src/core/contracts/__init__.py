"""
Contract Validation Module

Модуль для валидации JSON контрактов: payload вызовов и записи event log.
"""

from .validators import (
    CallDataValidator,
    ContractValidator,
    EventRecordValidator,
    SchemaLoader,
    validate_call_data,
    validate_event_record,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "CallDataValidator",
    "EventRecordValidator",
    # Functions
    "validate_call_data",
    "validate_event_record",
]
