"""
Revert taxonomy — ошибки исполнения контрактов

Любая ошибка прерывает транзакцию целиком: Chain.transact откатывает
состояние всех контрактов, балансы и event log, затем пробрасывает
исключение вызывающему коду.

Каждое исключение несёт machine-readable `reason` (имя класса) и
произвольные `details` для диагностики.
"""

from typing import Any


class ContractRevert(Exception):
    """
    Базовый класс для всех revert-ошибок.

    Args:
        message: человекочитаемое описание
        **details: контекст ошибки (адреса, id, суммы)
    """

    def __init__(self, message: str = "", **details: Any):
        self.details = details
        super().__init__(message or self.reason)

    @property
    def reason(self) -> str:
        return type(self).__name__


# =============================================================================
# ECONOMY
# =============================================================================


class InsufficientFunds(ContractRevert):
    """Платёж меньше цены одного яйца."""


class NoResource(ContractRevert):
    """У вызывающего нет яиц для создания крокодила."""


class Unauthorized(ContractRevert):
    """Вызывающий не владеет крокодилом или owner-capability."""


class CooldownActive(ContractRevert):
    """Крокодил уже откладывал яйца менее 600 секунд назад."""


class AlreadyInitialized(ContractRevert):
    """Повторный вызов initialize()."""


class MintRestricted(ContractRevert):
    """Mint яиц разрешён только экономике."""


class InsufficientBalance(ContractRevert):
    """Недостаточный баланс (яйца или native currency)."""


class NonexistentCrocodile(ContractRevert):
    """Запрос к крокодилу, которого нет (или он продан)."""


class InvalidPrice(ContractRevert):
    """Цена яйца должна быть строго положительной."""


class InvalidRecipient(ContractRevert):
    """Нулевой адрес в качестве получателя крокодила или owner-capability."""


class StorageLayoutViolation(ContractRevert):
    """Новая ревизия логики меняет порядок или удаляет поля storage."""


class FutureLookup(ContractRevert):
    """Запрос исторического баланса для текущего или будущего блока."""


# =============================================================================
# HOST
# =============================================================================


class ValueTransferFailed(ContractRevert):
    """Получатель отклонил перевод native currency."""


class UnknownContract(ContractRevert):
    """По адресу нет развёрнутого контракта."""


class UnknownFunction(ContractRevert):
    """Функция не существует или не помечена как external."""


class InvalidCallData(ContractRevert):
    """Payload не соответствует контракту call_data."""


class NoActiveCall(ContractRevert):
    """Обращение к msg вне транзакции."""


# =============================================================================
# TIMELOCK
# =============================================================================


class MissingRole(Unauthorized):
    """У вызывающего нет требуемой роли."""


class InsufficientDelay(ContractRevert):
    """Задержка операции меньше min_delay."""


class OperationAlreadyQueued(ContractRevert):
    """Операция с таким id уже поставлена в очередь."""


class OperationNotReady(ContractRevert):
    """Операция не поставлена в очередь или eta ещё не наступил."""


class OperationExpired(ContractRevert):
    """Окно исполнения (eta + grace_period) истекло."""


class PredecessorNotDone(ContractRevert):
    """Зависимая операция ещё не исполнена."""


# =============================================================================
# GOVERNANCE
# =============================================================================


class AlreadyVoted(ContractRevert):
    """Адрес уже голосовал по этому предложению."""


class ProposalNotSuccessful(ContractRevert):
    """Queue разрешён только для Succeeded предложений."""


class UnknownProposal(ContractRevert):
    """Предложение с таким id не создавалось."""


class ProposalAlreadyExists(ContractRevert):
    """Предложение с тем же содержимым уже создано."""


class InvalidProposal(ContractRevert):
    """Пустой список вызовов или длины targets/values/calldatas не совпадают."""


class ProposalNotActive(ContractRevert):
    """Голосование возможно только в состоянии Active."""


class ProposalNotQueued(ContractRevert):
    """Execute разрешён только для Queued предложений."""


class InvalidVoteType(ContractRevert):
    """support вне {Against, For, Abstain}."""


class BelowProposalThreshold(ContractRevert):
    """У предлагающего меньше голосов, чем proposal_threshold."""
