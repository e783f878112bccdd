"""
Общие fixtures: Chain, аккаунты и развёрнутая система.
"""

import pytest

from src.core.config import ProtocolSettings
from src.core.domain.units import to_wei
from src.core.host import Chain, SequenceEntropy
from src.deploy import deploy_economy, deploy_system

STARTING_BALANCE = to_wei("100")


@pytest.fixture
def settings() -> ProtocolSettings:
    """Параметры по умолчанию, короткое голосование для unit-тестов."""
    return ProtocolSettings(voting_period_blocks=5)


@pytest.fixture
def entropy() -> SequenceEntropy:
    return SequenceEntropy([3, 10, 0, 25])


@pytest.fixture
def chain(settings, entropy) -> Chain:
    return Chain(settings=settings, entropy=entropy)


@pytest.fixture
def deployer(chain) -> str:
    return chain.create_account("deployer", STARTING_BALANCE)


@pytest.fixture
def alice(chain) -> str:
    return chain.create_account("alice", STARTING_BALANCE)


@pytest.fixture
def bob(chain) -> str:
    return chain.create_account("bob", STARTING_BALANCE)


@pytest.fixture
def carol(chain) -> str:
    return chain.create_account("carol", STARTING_BALANCE)


@pytest.fixture
def economy(chain, deployer):
    """(crocodiles proxy, egg ledger), owner — deployer."""
    return deploy_economy(chain, deployer)


@pytest.fixture
def crocodiles(economy):
    return economy[0]


@pytest.fixture
def eggs(economy):
    return economy[1]


@pytest.fixture
def system(chain, deployer):
    """Полностью настроенная система: owner экономики — executor."""
    return deploy_system(chain, deployer)
