"""
Governance — Модели голосования и предложений

Enum значения совпадают с on-chain нумерацией Governor:
- VoteType: Against=0, For=1, Abstain=2
- ProposalState: Pending=0 ... Executed=7
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from .crocodile import ADDRESS_PATTERN


# =============================================================================
# ENUMS
# =============================================================================


class VoteType(int, Enum):
    """Варианты голоса."""

    AGAINST = 0
    FOR = 1
    ABSTAIN = 2


class ProposalState(int, Enum):
    """
    Состояние предложения.

    States:
    - PENDING: голосование ещё не началось (voting delay)
    - ACTIVE: идёт голосование
    - CANCELED: отменено (reserved, точки входа cancel нет)
    - DEFEATED: не набран quorum или for <= against
    - SUCCEEDED: принято, ждёт queue
    - QUEUED: в очереди TimeDelayedExecutor
    - EXPIRED: не исполнено до eta + grace_period
    - EXECUTED: исполнено
    """

    PENDING = 0
    ACTIVE = 1
    CANCELED = 2
    DEFEATED = 3
    SUCCEEDED = 4
    QUEUED = 5
    EXPIRED = 6
    EXECUTED = 7


# =============================================================================
# MODELS
# =============================================================================


class ProposalVotes(BaseModel):
    """Результат подсчёта голосов (proposalVotes)."""

    against_votes: int = Field(0, ge=0)
    for_votes: int = Field(0, ge=0)
    abstain_votes: int = Field(0, ge=0)

    model_config = {"frozen": True}

    @property
    def total(self) -> int:
        """Все участвующие голоса (учитываются в quorum)."""
        return self.against_votes + self.for_votes + self.abstain_votes


class ProposalDetails(BaseModel):
    """
    Read-only снапшот предложения.

    snapshot_block — блок создания; вес голоса = баланс крокодилов на конец
    этого блока. Голосование открыто в блоках (vote_start, vote_end].
    """

    proposal_id: int = Field(..., ge=0)
    proposer: str = Field(..., pattern=ADDRESS_PATTERN)
    description_hash: str = Field(..., pattern="^0x[0-9a-f]{64}$")
    snapshot_block: int = Field(..., ge=0)
    snapshot_total_supply: int = Field(..., ge=0)
    vote_start: int = Field(..., ge=0)
    vote_end: int = Field(..., ge=0)
    eta: Optional[int] = Field(None, ge=0, description="Timestamp готовности в timelock")
    state: ProposalState
    votes: ProposalVotes

    model_config = {"frozen": True}
