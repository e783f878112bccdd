"""
Bootstrap — развёртывание и настройка всей системы

Порядок:
1. Вычислить адрес EggLedger заранее (deployer nonce + 1)
2. Развернуть proxy CrocodileEconomy и вызвать initialize(egg_address)
3. Развернуть EggLedger с адресом экономики как единственным минтером
4. Развернуть TimeDelayedExecutor (min_delay, без proposers/executors,
   deployer — временный admin)
5. Развернуть GovernanceController(token=экономика, timelock)
6. PROPOSER → governor, EXECUTOR → ZERO_ADDRESS (открытое исполнение),
   ADMIN у deployer отзывается
7. Owner-capability экономики передаётся executor

После шага 6 ни у одного внешнего адреса нет TIMELOCK_ADMIN_ROLE.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from src.core.config import ProtocolSettings
from src.core.domain.crocodile import ZERO_ADDRESS
from src.core.host.abi import normalize_address
from src.core.host.chain import Chain
from src.economy.crocodiles import CrocodileEconomy
from src.economy.egg_ledger import EggLedger
from src.economy.proxy import UpgradeableProxy, deploy_proxy
from src.governance.governor import GovernanceController
from src.governance.timelock import Role, TimeDelayedExecutor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeployedSystem:
    """Адреса и handles развёрнутых контрактов."""

    deployer: str
    crocodiles: UpgradeableProxy
    eggs: EggLedger
    timelock: TimeDelayedExecutor
    governor: GovernanceController


def deploy_economy(chain: Chain, deployer: str) -> tuple[UpgradeableProxy, EggLedger]:
    """
    Развёртывание пары экономика + ledger яиц.

    Адреса ссылаются друг на друга, поэтому адрес EggLedger вычисляется
    до развёртывания proxy (proxy потребляет один nonce).
    """
    deployer = normalize_address(deployer)
    egg_address = chain.compute_contract_address(deployer, chain.nonce_of(deployer) + 1)

    crocodiles = deploy_proxy(chain, deployer, CrocodileEconomy, egg_address)
    eggs = chain.deploy(deployer, lambda c, address: EggLedger(c, address, crocodiles.address))
    if eggs.address != egg_address:
        raise RuntimeError(f"EggLedger deployed at {eggs.address}, expected {egg_address}")

    logger.info("Economy deployed: crocodiles=%s eggs=%s", crocodiles.address, eggs.address)
    return crocodiles, eggs


def deploy_system(
    chain: Chain,
    deployer: str,
    settings: Optional[ProtocolSettings] = None,
    transfer_ownership: bool = True,
) -> DeployedSystem:
    """
    Полный bootstrap: экономика, executor, governor и роли.

    Args:
        chain: Chain
        deployer: EOA, выполняющий развёртывание
        settings: параметры (по умолчанию chain.settings)
        transfer_ownership: передать owner-capability экономики executor

    Returns:
        DeployedSystem
    """
    settings = settings or chain.settings
    deployer = normalize_address(deployer)

    crocodiles, eggs = deploy_economy(chain, deployer)

    timelock = chain.deploy(
        deployer,
        lambda c, address: TimeDelayedExecutor(
            c,
            address,
            min_delay=settings.timelock_min_delay_seconds,
            admin=deployer,
            grace_period=settings.timelock_grace_period_seconds,
        ),
    )
    governor = chain.deploy(
        deployer,
        lambda c, address: GovernanceController(
            c, address, token=crocodiles.address, timelock=timelock.address, settings=settings
        ),
    )

    chain.transact(deployer, timelock.grant_role, Role.PROPOSER, governor.address)
    chain.transact(deployer, timelock.grant_role, Role.EXECUTOR, ZERO_ADDRESS)
    chain.transact(deployer, timelock.revoke_role, Role.ADMIN, deployer)

    if transfer_ownership:
        chain.transact(deployer, crocodiles.transfer_ownership, timelock.address)

    logger.info(
        "Governance deployed: timelock=%s governor=%s (ownership transferred: %s)",
        timelock.address, governor.address, transfer_ownership,
    )
    return DeployedSystem(
        deployer=deployer,
        crocodiles=crocodiles,
        eggs=eggs,
        timelock=timelock,
        governor=governor,
    )
