"""
GovernanceController — жизненный цикл предложений

State machine:
    Pending → Active → {Succeeded | Defeated}
    Succeeded → Queued (queue) → Executed (execute)
    Queued → Expired (eta + grace_period без execute)
    Canceled — зарезервировано, точки входа cancel нет

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Вес голоса = баланс крокодилов на конец блока создания предложения;
   крокодилы, созданные позже, веса не дают
2. Голосование открыто в блоках (vote_start, vote_end]
3. Результат вычисляется только после vote_end: пока идёт голосование,
   состояние Active даже при достигнутом quorum
4. Succeeded ⇔ for > against И for + against + abstain >= quorum
5. quorum = snapshot_total_supply * quorum_percentage // 100
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from src.core.config import ProtocolSettings
from src.core.domain.governance import ProposalDetails, ProposalState, ProposalVotes, VoteType
from src.core.domain.units import quorum_votes
from src.core.errors import (
    AlreadyVoted,
    BelowProposalThreshold,
    InvalidProposal,
    InvalidVoteType,
    ProposalAlreadyExists,
    ProposalNotActive,
    ProposalNotQueued,
    ProposalNotSuccessful,
    UnknownProposal,
)
from src.core.host.abi import hash_calls, hash_text, normalize_address
from src.core.host.contract import Contract, external
from src.governance.timelock import Operation, TimeDelayedExecutor

logger = logging.getLogger(__name__)


# =============================================================================
# STORAGE
# =============================================================================


@dataclass
class ProposalCore:
    proposer: str
    description_hash: str
    snapshot_block: int
    snapshot_total_supply: int
    vote_start: int
    vote_end: int
    eta: Optional[int] = None
    operation_id: Optional[str] = None
    executed: bool = False
    canceled: bool = False


@dataclass
class ProposalTally:
    against_votes: int = 0
    for_votes: int = 0
    abstain_votes: int = 0


@dataclass
class GovernorStorage:
    token: str
    timelock: str
    voting_delay: int
    voting_period: int
    quorum_percentage: int
    proposal_threshold: int
    proposals: dict[int, ProposalCore] = field(default_factory=dict)
    tallies: dict[int, ProposalTally] = field(default_factory=dict)
    voters: dict[int, set[str]] = field(default_factory=dict)


# =============================================================================
# CONTROLLER
# =============================================================================


class GovernanceController(Contract):
    """
    Governor: голосование крокодилами, исполнение через TimeDelayedExecutor.

    Args:
        chain: Chain
        address: адрес контракта
        token: адрес CrocodileEconomy (источник веса голосов)
        timelock: адрес TimeDelayedExecutor
        settings: параметры голосования (по умолчанию chain.settings)
    """

    NAME = "GovernorContract"

    def __init__(
        self,
        chain,
        address: str,
        token: str,
        timelock: str,
        settings: Optional[ProtocolSettings] = None,
    ):
        super().__init__(chain, address)
        settings = settings or chain.settings
        self.storage = GovernorStorage(
            token=normalize_address(token),
            timelock=normalize_address(timelock),
            voting_delay=settings.voting_delay_blocks,
            voting_period=settings.voting_period_blocks,
            quorum_percentage=settings.quorum_percentage,
            proposal_threshold=settings.proposal_threshold,
        )

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def name(self) -> str:
        return self.NAME

    def token(self) -> str:
        return self.storage.token

    def timelock(self) -> str:
        return self.storage.timelock

    def voting_delay(self) -> int:
        return self.storage.voting_delay

    def voting_period(self) -> int:
        return self.storage.voting_period

    def proposal_threshold(self) -> int:
        return self.storage.proposal_threshold

    def hash_proposal(
        self,
        targets: Sequence[str],
        values: Sequence[int],
        calldatas: Sequence[bytes],
        description_hash: str,
    ) -> int:
        targets = [normalize_address(t) for t in targets]
        return int(hash_calls(targets, values, calldatas, description_hash), 16)

    def quorum(self, block_number: int) -> int:
        """Quorum для блока (по total supply на его конец)."""
        supply = self._token().get_past_total_supply(block_number)
        return quorum_votes(supply, self.storage.quorum_percentage)

    def get_votes(self, account: str, block_number: int) -> int:
        return self._token().get_past_votes(account, block_number)

    def state(self, proposal_id: int) -> ProposalState:
        proposal = self._proposal(proposal_id)
        if proposal.executed:
            return ProposalState.EXECUTED
        if proposal.canceled:
            return ProposalState.CANCELED

        current = self.chain.block_number
        if current <= proposal.vote_start:
            return ProposalState.PENDING
        if current <= proposal.vote_end:
            return ProposalState.ACTIVE
        if not (self._quorum_reached(proposal_id) and self._vote_succeeded(proposal_id)):
            return ProposalState.DEFEATED
        if proposal.operation_id is None:
            return ProposalState.SUCCEEDED
        # операцию мог исполнить кто угодно напрямую через executor (открытая роль EXECUTOR)
        if self._timelock().is_operation_done(proposal.operation_id):
            return ProposalState.EXECUTED
        if self._timelock().is_operation_expired(proposal.operation_id):
            return ProposalState.EXPIRED
        return ProposalState.QUEUED

    def proposal_snapshot(self, proposal_id: int) -> int:
        return self._proposal(proposal_id).snapshot_block

    def proposal_deadline(self, proposal_id: int) -> int:
        return self._proposal(proposal_id).vote_end

    def proposal_eta(self, proposal_id: int) -> int:
        return self._proposal(proposal_id).eta or 0

    def proposal_votes(self, proposal_id: int) -> ProposalVotes:
        self._proposal(proposal_id)
        tally = self.storage.tallies[proposal_id]
        return ProposalVotes(
            against_votes=tally.against_votes,
            for_votes=tally.for_votes,
            abstain_votes=tally.abstain_votes,
        )

    def has_voted(self, proposal_id: int, account: str) -> bool:
        return normalize_address(account) in self.storage.voters.get(proposal_id, set())

    def get_proposal(self, proposal_id: int) -> ProposalDetails:
        proposal = self._proposal(proposal_id)
        return ProposalDetails(
            proposal_id=proposal_id,
            proposer=proposal.proposer,
            description_hash=proposal.description_hash,
            snapshot_block=proposal.snapshot_block,
            snapshot_total_supply=proposal.snapshot_total_supply,
            vote_start=proposal.vote_start,
            vote_end=proposal.vote_end,
            eta=proposal.eta,
            state=self.state(proposal_id),
            votes=self.proposal_votes(proposal_id),
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @external
    def propose(
        self,
        targets: Sequence[str],
        values: Sequence[int],
        calldatas: Sequence[bytes],
        description: str,
    ) -> int:
        """
        Создание предложения.

        Returns:
            proposal id

        Raises:
            InvalidProposal: пустой пакет или разные длины списков
            ProposalAlreadyExists: такое же предложение уже создано
            BelowProposalThreshold: у предлагающего недостаточно голосов
        """
        if not targets or not (len(targets) == len(values) == len(calldatas)):
            raise InvalidProposal(
                "Proposal must have equal, non-empty targets/values/calldatas",
                targets=len(targets),
                values=len(values),
                calldatas=len(calldatas),
            )

        proposer = self.msg_sender
        s = self.storage
        snapshot = self.chain.block_number
        if s.proposal_threshold:
            votes = self.get_votes(proposer, snapshot - 1)
            if votes < s.proposal_threshold:
                raise BelowProposalThreshold(
                    f"Proposer votes {votes} below threshold {s.proposal_threshold}",
                    proposer=proposer,
                    votes=votes,
                )

        targets = [normalize_address(t) for t in targets]
        description_hash = hash_text(description)
        proposal_id = self.hash_proposal(targets, values, calldatas, description_hash)
        if proposal_id in s.proposals:
            raise ProposalAlreadyExists(f"Proposal {proposal_id} already exists", proposal_id=proposal_id)

        vote_start = snapshot + s.voting_delay
        vote_end = vote_start + s.voting_period
        s.proposals[proposal_id] = ProposalCore(
            proposer=proposer,
            description_hash=description_hash,
            snapshot_block=snapshot,
            snapshot_total_supply=self._token().total_supply(),
            vote_start=vote_start,
            vote_end=vote_end,
        )
        s.tallies[proposal_id] = ProposalTally()
        s.voters[proposal_id] = set()

        self.emit(
            "ProposalCreated",
            proposal_id=proposal_id,
            proposer=proposer,
            targets=list(targets),
            values=list(values),
            calldatas=[c.hex() for c in calldatas],
            vote_start=vote_start,
            vote_end=vote_end,
            description=description,
        )
        logger.info("Proposal %d created by %s: %s", proposal_id, proposer, description)
        return proposal_id

    @external
    def cast_vote(self, proposal_id: int, support: int) -> int:
        return self._cast_vote(proposal_id, self.msg_sender, support, "")

    @external
    def cast_vote_with_reason(self, proposal_id: int, support: int, reason: str) -> int:
        return self._cast_vote(proposal_id, self.msg_sender, support, reason)

    @external
    def queue(
        self,
        targets: Sequence[str],
        values: Sequence[int],
        calldatas: Sequence[bytes],
        description_hash: str,
    ) -> int:
        """
        Постановка принятого предложения в очередь executor.

        Returns:
            proposal id

        Raises:
            ProposalNotSuccessful: предложение не в состоянии Succeeded
        """
        proposal_id = self.hash_proposal(targets, values, calldatas, description_hash)
        state = self.state(proposal_id)
        if state != ProposalState.SUCCEEDED:
            raise ProposalNotSuccessful(
                f"Proposal {proposal_id} is {state.name}, not SUCCEEDED",
                proposal_id=proposal_id,
                state=state.name,
            )

        timelock = self._timelock()
        operation = self._operation(targets, values, calldatas, description_hash)
        eta = self.chain.call(self.address, timelock.queue, operation)

        proposal = self.storage.proposals[proposal_id]
        proposal.eta = eta
        proposal.operation_id = operation.id
        self.emit("ProposalQueued", proposal_id=proposal_id, eta=eta)
        logger.info("Proposal %d queued, eta=%d", proposal_id, eta)
        return proposal_id

    @external
    def execute(
        self,
        targets: Sequence[str],
        values: Sequence[int],
        calldatas: Sequence[bytes],
        description_hash: str,
    ) -> int:
        """
        Исполнение предложения через executor.

        Raises:
            UnknownProposal: содержимое не совпадает ни с одним предложением
            ProposalNotQueued: предложение не в состоянии Queued
        """
        proposal_id = self.hash_proposal(targets, values, calldatas, description_hash)
        state = self.state(proposal_id)
        if state != ProposalState.QUEUED:
            raise ProposalNotQueued(
                f"Proposal {proposal_id} is {state.name}, not QUEUED",
                proposal_id=proposal_id,
                state=state.name,
            )

        self.storage.proposals[proposal_id].executed = True

        timelock = self._timelock()
        operation = self._operation(targets, values, calldatas, description_hash)
        self.chain.call(self.address, timelock.execute, operation, value=self.msg_value)

        self.emit("ProposalExecuted", proposal_id=proposal_id)
        logger.info("Proposal %d executed", proposal_id)
        return proposal_id

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _cast_vote(self, proposal_id: int, voter: str, support: int, reason: str) -> int:
        state = self.state(proposal_id)
        if state != ProposalState.ACTIVE:
            raise ProposalNotActive(
                f"Proposal {proposal_id} is {state.name}, voting is closed",
                proposal_id=proposal_id,
                state=state.name,
            )
        try:
            vote = VoteType(support)
        except ValueError as e:
            raise InvalidVoteType(f"Unknown vote type {support!r}", support=support) from e

        voters = self.storage.voters[proposal_id]
        if voter in voters:
            raise AlreadyVoted(f"{voter} already voted on proposal {proposal_id}", voter=voter)

        proposal = self.storage.proposals[proposal_id]
        weight = self.get_votes(voter, proposal.snapshot_block)

        voters.add(voter)
        tally = self.storage.tallies[proposal_id]
        if vote == VoteType.AGAINST:
            tally.against_votes += weight
        elif vote == VoteType.FOR:
            tally.for_votes += weight
        else:
            tally.abstain_votes += weight

        self.emit(
            "VoteCast",
            voter=voter,
            proposal_id=proposal_id,
            support=vote.value,
            weight=weight,
            reason=reason,
        )
        logger.info("Vote %s by %s on proposal %d (weight %d)", vote.name, voter, proposal_id, weight)
        return weight

    def _quorum_reached(self, proposal_id: int) -> bool:
        proposal = self.storage.proposals[proposal_id]
        required = quorum_votes(proposal.snapshot_total_supply, self.storage.quorum_percentage)
        return self.proposal_votes(proposal_id).total >= required

    def _vote_succeeded(self, proposal_id: int) -> bool:
        tally = self.storage.tallies[proposal_id]
        return tally.for_votes > tally.against_votes

    def _proposal(self, proposal_id: int) -> ProposalCore:
        proposal = self.storage.proposals.get(proposal_id)
        if proposal is None:
            raise UnknownProposal(f"Unknown proposal {proposal_id}", proposal_id=proposal_id)
        return proposal

    def _operation(
        self,
        targets: Sequence[str],
        values: Sequence[int],
        calldatas: Sequence[bytes],
        description_hash: str,
    ) -> Operation:
        return Operation.build(targets, values, calldatas, predecessor="", salt=description_hash)

    def _token(self) -> Any:
        return self.chain.get_contract(self.storage.token)

    def _timelock(self) -> TimeDelayedExecutor:
        return self.chain.get_contract(self.storage.timelock)
