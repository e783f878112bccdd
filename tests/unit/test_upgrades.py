"""
Тесты UpgradeableProxy и ревизий CrocodileEconomy

Проверяет:
1. Смена логики сохраняет цену, балансы и id
2. upgrade_to доступен только owner
3. Append-only storage layout
4. Повторный initialize после upgrade запрещён
5. Откат транзакции/снапшота восстанавливает ревизию
"""

from dataclasses import dataclass

import pytest

from src.core.domain.units import to_wei
from src.core.errors import AlreadyInitialized, StorageLayoutViolation, Unauthorized, UnknownContract
from src.economy import (
    IMPLEMENTATIONS,
    CrocodileEconomy,
    CrocodileEconomyV2,
    CrocodileStorage,
    CrocodileStorageV2,
    ProxiedLogic,
    check_storage_layout,
    migrate_storage,
)

PRICE = to_wei("0.01")


@dataclass
class ReorderedStorage:
    name: str = ""
    initialized: bool = False


class ReorderedLogic(ProxiedLogic):
    VERSION = "9.9.9"
    STORAGE_LAYOUT = ReorderedStorage


@pytest.fixture
def populated(chain, crocodiles, deployer, alice):
    """Экономика с новой ценой и двумя крокодилами alice."""
    chain.transact(alice, crocodiles.buy_eggs, value=PRICE * 3)
    chain.transact(alice, crocodiles.create)
    chain.transact(alice, crocodiles.create)
    chain.transact(deployer, crocodiles.change_price, to_wei("0.02"))
    return crocodiles


class TestRegistry:
    """Реестр ревизий"""

    def test_versions_registered(self) -> None:
        assert IMPLEMENTATIONS["1.0.0"] is CrocodileEconomy
        assert IMPLEMENTATIONS["2.0.0"] is CrocodileEconomyV2


class TestUpgrade:
    """upgrade_to()"""

    def test_v1_has_no_v2_functions(self, crocodiles) -> None:
        with pytest.raises(AttributeError):
            crocodiles.test_upgrade()

    def test_upgrade_preserves_state(self, chain, populated, eggs, deployer, alice) -> None:
        address = populated.address
        chain.transact(deployer, populated.upgrade_to, "2.0.0")

        assert populated.address == address
        assert populated.version() == "2.0.0"
        assert populated.test_upgrade() == "version 2 works"
        assert populated.egg_price() == to_wei("0.02")
        assert populated.balance_of(alice) == 2
        assert populated.owner_of(1) == alice
        assert populated.owner_of(2) == alice
        assert populated.crocodiles_created() == 2
        assert eggs.balance_of(alice) == 1
        assert populated.get_contract_balance() == PRICE * 3

    def test_ids_continue_after_upgrade(self, chain, populated, deployer, alice) -> None:
        chain.transact(deployer, populated.upgrade_to, CrocodileEconomyV2)
        receipt = chain.transact(alice, populated.create)
        assert receipt.return_value == 3

    def test_upgraded_event(self, chain, crocodiles, deployer) -> None:
        receipt = chain.transact(deployer, crocodiles.upgrade_to, "2.0.0")
        (event,) = receipt.events_named("Upgraded")
        assert event.args == {"implementation": "CrocodileEconomyV2", "version": "2.0.0"}

    def test_only_owner_can_upgrade(self, chain, crocodiles, alice) -> None:
        with pytest.raises(Unauthorized):
            chain.transact(alice, crocodiles.upgrade_to, "2.0.0")
        assert crocodiles.version() == "1.0.0"

    def test_unknown_version(self, chain, crocodiles, deployer) -> None:
        with pytest.raises(UnknownContract):
            chain.transact(deployer, crocodiles.upgrade_to, "3.0.0")

    def test_initialize_still_locked(self, chain, crocodiles, eggs, deployer) -> None:
        chain.transact(deployer, crocodiles.upgrade_to, "2.0.0")
        with pytest.raises(AlreadyInitialized):
            chain.transact(deployer, crocodiles.initialize, eggs.address)

    def test_v2_counts_laid_eggs(self, chain, populated, deployer, alice) -> None:
        chain.transact(deployer, populated.upgrade_to, "2.0.0")
        assert populated.eggs_laid_total() == 0

        chain.transact(alice, populated.lay_egg, 1)
        chain.transact(alice, populated.lay_egg, 2)
        assert populated.eggs_laid_total() == 13


class TestStorageLayout:
    """Append-only storage"""

    def test_v2_extends_v1(self) -> None:
        check_storage_layout(CrocodileStorage, CrocodileStorageV2)

    def test_reordered_layout_rejected(self) -> None:
        with pytest.raises(StorageLayoutViolation):
            check_storage_layout(CrocodileStorage, ReorderedStorage)

    def test_upgrade_to_incompatible_logic_reverts(self, chain, populated, deployer) -> None:
        with pytest.raises(StorageLayoutViolation):
            chain.transact(deployer, populated.upgrade_to, ReorderedLogic)
        assert populated.version() == "1.0.0"
        assert populated.egg_price() == to_wei("0.02")

    def test_migration_keeps_values_and_defaults_new_fields(self) -> None:
        old = CrocodileStorage(egg_price=123, crocodiles_created=7)
        new = migrate_storage(old, CrocodileStorageV2)
        assert isinstance(new, CrocodileStorageV2)
        assert new.egg_price == 123
        assert new.crocodiles_created == 7
        assert new.eggs_laid_total == 0


class TestRevert:
    """Откат восстанавливает ревизию"""

    def test_snapshot_revert_restores_v1(self, chain, crocodiles, deployer) -> None:
        snapshot_id = chain.snapshot()
        chain.transact(deployer, crocodiles.upgrade_to, "2.0.0")
        assert crocodiles.version() == "2.0.0"

        chain.revert(snapshot_id)
        assert crocodiles.version() == "1.0.0"
        assert type(crocodiles.storage) is CrocodileStorage
