"""
UpgradeableProxy — UUPS-подобный прокси

Прокси владеет адресом и storage; логика (класс-ревизия) подменяется
через upgrade_to(), который живёт в самой логике и защищён owner-check.

Storage layout — dataclass. Ревизии могут только ДОБАВЛЯТЬ поля в конец:
порядок и имена существующих полей неизменны (иначе
StorageLayoutViolation), поэтому состояние переживает смену логики.
"""

import copy
import logging
from dataclasses import fields
from typing import Any, Union

from src.core.errors import StorageLayoutViolation, UnknownContract
from src.core.host.contract import Contract

logger = logging.getLogger(__name__)


# Реестр ревизий логики: version → класс
IMPLEMENTATIONS: dict[str, type] = {}


def register_implementation(cls: type) -> type:
    """Декоратор: регистрация ревизии логики по VERSION."""
    IMPLEMENTATIONS[cls.VERSION] = cls
    return cls


def resolve_implementation(implementation: Union[str, type]) -> type:
    """Класс логики по версии ('2.0.0') или сам класс."""
    if isinstance(implementation, str):
        cls = IMPLEMENTATIONS.get(implementation)
        if cls is None:
            raise UnknownContract(f"Unknown implementation version {implementation!r}")
        return cls
    return implementation


def check_storage_layout(old_layout: type, new_layout: type) -> None:
    """
    Проверка append-only совместимости storage.

    Raises:
        StorageLayoutViolation: если новая раскладка не начинается
            со всех полей старой в том же порядке
    """
    old_fields = [f.name for f in fields(old_layout)]
    new_fields = [f.name for f in fields(new_layout)]
    if new_fields[: len(old_fields)] != old_fields:
        raise StorageLayoutViolation(
            f"{new_layout.__name__} does not extend {old_layout.__name__} append-only",
            old_fields=old_fields,
            new_fields=new_fields,
        )


def migrate_storage(storage: Any, new_layout: type) -> Any:
    """Перенос значений в новую раскладку; добавленные поля получают default."""
    if type(storage) is new_layout:
        return storage
    values = {f.name: getattr(storage, f.name) for f in fields(storage)}
    return new_layout(**values)


class ProxiedLogic:
    """Базовый класс ревизии логики: адрес, chain и storage берутся у прокси."""

    VERSION = "0.0.0"
    STORAGE_LAYOUT: type = type(None)

    def __init__(self, proxy: "UpgradeableProxy"):
        self.proxy = proxy

    @property
    def chain(self):
        return self.proxy.chain

    @property
    def address(self) -> str:
        return self.proxy.address

    @property
    def storage(self):
        return self.proxy.storage

    @property
    def msg_sender(self) -> str:
        return self.chain.msg.sender

    @property
    def msg_value(self) -> int:
        return self.chain.msg.value

    def emit(self, name: str, **args: Any) -> None:
        self.chain.emit(self.address, name, **args)

    def version(self) -> str:
        return self.VERSION


class UpgradeableProxy(Contract):
    """Прокси: storage + текущая ревизия логики; атрибуты делегируются логике."""

    def __init__(self, chain, address: str, implementation: type):
        super().__init__(chain, address)
        self._implementation = implementation
        self.storage = implementation.STORAGE_LAYOUT()
        self._logic = implementation(self)

    def __getattr__(self, name: str) -> Any:
        # Вызывается только если атрибут не найден у прокси
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self._logic, name)

    @property
    def implementation(self) -> type:
        return self._implementation

    def capture_state(self) -> Any:
        return self._implementation, copy.deepcopy(self.storage)

    def restore_state(self, state: Any) -> None:
        implementation, storage = state
        if implementation is not self._implementation:
            self._implementation = implementation
            self._logic = implementation(self)
        self.storage = copy.deepcopy(storage)

    def _upgrade_to(self, new_implementation: type) -> None:
        check_storage_layout(self._implementation.STORAGE_LAYOUT, new_implementation.STORAGE_LAYOUT)
        previous = self._implementation
        self.storage = migrate_storage(self.storage, new_implementation.STORAGE_LAYOUT)
        self._implementation = new_implementation
        self._logic = new_implementation(self)
        self.chain.emit(
            self.address,
            "Upgraded",
            implementation=new_implementation.__name__,
            version=new_implementation.VERSION,
        )
        logger.info(
            "Proxy %s upgraded %s -> %s", self.address, previous.VERSION, new_implementation.VERSION
        )


def deploy_proxy(chain, deployer: str, implementation: type, *init_args: Any) -> UpgradeableProxy:
    """
    Развёртывание прокси и вызов initialize() в той же транзакции.

    Аналог upgrades.deployProxy(factory, args, {initializer: 'initialize'}).
    """

    def factory(c, address: str) -> UpgradeableProxy:
        proxy = UpgradeableProxy(c, address, implementation)
        proxy.initialize(*init_args)
        return proxy

    return chain.deploy(deployer, factory)
