"""
Economy — ledger яиц, экономика крокодилов и upgradeable proxy.
"""

from .checkpoints import Checkpoints
from .crocodiles import (
    CrocodileEconomy,
    CrocodileEconomyV2,
    CrocodileRecord,
    CrocodileStorage,
    CrocodileStorageV2,
)
from .egg_ledger import EggLedger, EggStorage
from .proxy import (
    IMPLEMENTATIONS,
    ProxiedLogic,
    UpgradeableProxy,
    check_storage_layout,
    deploy_proxy,
    migrate_storage,
    register_implementation,
    resolve_implementation,
)

__all__ = [
    # Eggs
    "EggLedger",
    "EggStorage",
    # Crocodiles
    "CrocodileEconomy",
    "CrocodileEconomyV2",
    "CrocodileRecord",
    "CrocodileStorage",
    "CrocodileStorageV2",
    "Checkpoints",
    # Proxy
    "IMPLEMENTATIONS",
    "ProxiedLogic",
    "UpgradeableProxy",
    "check_storage_layout",
    "deploy_proxy",
    "migrate_storage",
    "register_implementation",
    "resolve_implementation",
]
