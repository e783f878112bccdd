"""
Тесты GovernanceController

Проверяет:
1. Переходы состояний Pending → Active → Succeeded/Defeated → Queued → Executed
2. Вес голоса = баланс на блоке создания предложения
3. AlreadyVoted, InvalidVoteType, ProposalNotActive
4. Quorum (4% snapshot supply, for + against + abstain) и правило for > against
5. queue/execute: ProposalNotSuccessful, ProposalNotQueued, UnknownProposal
6. Expired после grace period executor
"""

import pytest

from src.core.config import ProtocolSettings
from src.core.domain import ProposalState, VoteType
from src.core.domain.units import to_wei
from src.core.errors import (
    AlreadyVoted,
    BelowProposalThreshold,
    InvalidProposal,
    InvalidVoteType,
    OperationNotReady,
    ProposalAlreadyExists,
    ProposalNotActive,
    ProposalNotQueued,
    ProposalNotSuccessful,
    UnknownProposal,
)
from src.core.host import Chain, encode_function_call, hash_text
from src.deploy import deploy_system
from src.governance import Operation

PRICE = to_wei("0.01")
NEW_PRICE = to_wei("1")
DESCRIPTION = "Change egg price to 1 ether"


def hatch(chain, system, account: str, count: int = 1) -> None:
    chain.transact(account, system.crocodiles.buy_eggs, value=PRICE * count)
    for _ in range(count):
        chain.transact(account, system.crocodiles.create)


def price_proposal(system, price: int = NEW_PRICE, description: str = DESCRIPTION):
    """(targets, values, calldatas, description)"""
    return (
        [system.crocodiles.address],
        [0],
        [encode_function_call("change_price", price)],
        description,
    )


def propose(chain, system, proposer: str, proposal=None) -> int:
    proposal = proposal or price_proposal(system)
    return chain.transact(proposer, system.governor.propose, *proposal).return_value


def queue_args(proposal):
    targets, values, calldatas, description = proposal
    return targets, values, calldatas, hash_text(description)


def start_voting(chain, system) -> None:
    chain.mine(system.governor.voting_delay() + 1)


def end_voting(chain, system) -> None:
    chain.mine(system.governor.voting_period())


@pytest.fixture
def voters(chain, system, alice, bob):
    """alice — 2 крокодила, bob — 1."""
    hatch(chain, system, alice, 2)
    hatch(chain, system, bob, 1)
    return alice, bob


# =============================================================================
# PROPOSE
# =============================================================================


class TestPropose:
    """propose()"""

    def test_new_proposal_is_pending(self, chain, system, voters, alice) -> None:
        governor = system.governor
        receipt = chain.transact(alice, governor.propose, *price_proposal(system))
        proposal_id = receipt.return_value

        assert governor.state(proposal_id) == ProposalState.PENDING
        assert governor.proposal_snapshot(proposal_id) == receipt.block_number
        assert governor.proposal_deadline(proposal_id) == receipt.block_number + 2 + 5
        (event,) = receipt.events_named("ProposalCreated")
        assert event.args["proposal_id"] == proposal_id
        assert event.args["description"] == DESCRIPTION

    def test_id_is_content_hash(self, chain, system, voters, alice) -> None:
        proposal = price_proposal(system)
        proposal_id = propose(chain, system, alice, proposal)
        assert system.governor.hash_proposal(*queue_args(proposal)) == proposal_id

    def test_duplicate_rejected(self, chain, system, voters, alice, bob) -> None:
        propose(chain, system, alice)
        with pytest.raises(ProposalAlreadyExists):
            propose(chain, system, bob)

    @pytest.mark.parametrize(
        "targets,values,calldatas",
        [([], [], []), (["0x" + "1" * 40], [0, 0], [b"{}"])],
    )
    def test_invalid_call_lists(self, chain, system, alice, targets, values, calldatas) -> None:
        with pytest.raises(InvalidProposal):
            chain.transact(alice, system.governor.propose, targets, values, calldatas, "bad")

    def test_unknown_proposal(self, system) -> None:
        with pytest.raises(UnknownProposal):
            system.governor.state(12345)

    def test_proposal_threshold(self) -> None:
        chain = Chain(settings=ProtocolSettings(voting_period_blocks=5, proposal_threshold=1))
        deployer, alice, bob = (
            chain.create_account(label, to_wei("10")) for label in ("deployer", "alice", "bob")
        )
        system = deploy_system(chain, deployer)
        hatch(chain, system, alice)

        with pytest.raises(BelowProposalThreshold):
            propose(chain, system, bob)
        propose(chain, system, alice)


# =============================================================================
# VOTING
# =============================================================================


class TestVoting:
    """cast_vote()"""

    def test_vote_before_start_rejected(self, chain, system, voters, alice) -> None:
        proposal_id = propose(chain, system, alice)
        with pytest.raises(ProposalNotActive):
            chain.transact(alice, system.governor.cast_vote, proposal_id, VoteType.FOR)

    def test_state_is_active_after_delay(self, chain, system, voters, alice) -> None:
        proposal_id = propose(chain, system, alice)
        chain.mine(system.governor.voting_delay())
        assert system.governor.state(proposal_id) == ProposalState.PENDING
        chain.mine()
        assert system.governor.state(proposal_id) == ProposalState.ACTIVE

    def test_weight_is_snapshot_balance(self, chain, system, voters, alice) -> None:
        proposal_id = propose(chain, system, alice)
        hatch(chain, system, alice)
        start_voting(chain, system)

        receipt = chain.transact(alice, system.governor.cast_vote, proposal_id, VoteType.FOR)

        assert receipt.return_value == 2
        assert system.governor.proposal_votes(proposal_id).for_votes == 2
        assert system.crocodiles.balance_of(alice) == 3

    def test_delegated_weight(self, chain, system, voters, alice, bob) -> None:
        chain.transact(alice, system.crocodiles.delegate, bob)
        proposal_id = propose(chain, system, alice)
        start_voting(chain, system)

        own = chain.transact(alice, system.governor.cast_vote, proposal_id, VoteType.FOR)
        delegated = chain.transact(bob, system.governor.cast_vote, proposal_id, VoteType.FOR)

        assert own.return_value == 0
        assert delegated.return_value == 3

    def test_crocodiles_after_snapshot_grant_nothing(self, chain, system, voters, alice, carol) -> None:
        proposal_id = propose(chain, system, alice)
        hatch(chain, system, carol)
        start_voting(chain, system)

        receipt = chain.transact(carol, system.governor.cast_vote, proposal_id, VoteType.FOR)
        assert receipt.return_value == 0
        assert system.governor.has_voted(proposal_id, carol)

    def test_double_vote_rejected(self, chain, system, voters, alice) -> None:
        proposal_id = propose(chain, system, alice)
        start_voting(chain, system)
        chain.transact(alice, system.governor.cast_vote, proposal_id, VoteType.FOR)
        with pytest.raises(AlreadyVoted):
            chain.transact(alice, system.governor.cast_vote, proposal_id, VoteType.AGAINST)
        assert system.governor.proposal_votes(proposal_id).against_votes == 0

    def test_invalid_vote_type(self, chain, system, voters, alice) -> None:
        proposal_id = propose(chain, system, alice)
        start_voting(chain, system)
        with pytest.raises(InvalidVoteType):
            chain.transact(alice, system.governor.cast_vote, proposal_id, 3)
        assert not system.governor.has_voted(proposal_id, alice)

    def test_vote_with_reason(self, chain, system, voters, alice) -> None:
        proposal_id = propose(chain, system, alice)
        start_voting(chain, system)
        receipt = chain.transact(
            alice, system.governor.cast_vote_with_reason, proposal_id, VoteType.ABSTAIN, "no opinion"
        )
        (event,) = receipt.events_named("VoteCast")
        assert event.args == {
            "voter": alice,
            "proposal_id": proposal_id,
            "support": 2,
            "weight": 2,
            "reason": "no opinion",
        }

    def test_vote_after_deadline_rejected(self, chain, system, voters, alice) -> None:
        proposal_id = propose(chain, system, alice)
        start_voting(chain, system)
        end_voting(chain, system)
        with pytest.raises(ProposalNotActive):
            chain.transact(alice, system.governor.cast_vote, proposal_id, VoteType.FOR)


# =============================================================================
# RESOLUTION
# =============================================================================


class TestResolution:
    """Quorum и итог голосования"""

    def test_active_even_with_quorum(self, chain, system, voters, alice) -> None:
        proposal_id = propose(chain, system, alice)
        start_voting(chain, system)
        chain.transact(alice, system.governor.cast_vote, proposal_id, VoteType.FOR)
        assert system.governor.state(proposal_id) == ProposalState.ACTIVE

    def test_succeeded_after_period(self, chain, system, voters, alice) -> None:
        proposal_id = propose(chain, system, alice)
        start_voting(chain, system)
        chain.transact(alice, system.governor.cast_vote, proposal_id, VoteType.FOR)
        end_voting(chain, system)
        assert system.governor.state(proposal_id) == ProposalState.SUCCEEDED

    def test_defeated_when_against_wins(self, chain, system, voters, alice, bob) -> None:
        proposal_id = propose(chain, system, alice)
        start_voting(chain, system)
        chain.transact(alice, system.governor.cast_vote, proposal_id, VoteType.AGAINST)
        chain.transact(bob, system.governor.cast_vote, proposal_id, VoteType.FOR)
        end_voting(chain, system)
        assert system.governor.state(proposal_id) == ProposalState.DEFEATED

    def test_tie_is_defeated(self, chain, system, alice, bob) -> None:
        hatch(chain, system, alice)
        hatch(chain, system, bob)
        proposal_id = propose(chain, system, alice)
        start_voting(chain, system)
        chain.transact(alice, system.governor.cast_vote, proposal_id, VoteType.FOR)
        chain.transact(bob, system.governor.cast_vote, proposal_id, VoteType.AGAINST)
        end_voting(chain, system)
        assert system.governor.state(proposal_id) == ProposalState.DEFEATED

    def test_no_votes_is_defeated(self, chain, system, voters, alice) -> None:
        proposal_id = propose(chain, system, alice)
        start_voting(chain, system)
        end_voting(chain, system)
        assert system.governor.state(proposal_id) == ProposalState.DEFEATED

    def test_quorum_is_four_percent_of_snapshot_supply(self, chain, system, alice) -> None:
        hatch(chain, system, alice, 50)
        proposal_id = propose(chain, system, alice)
        snapshot = system.governor.proposal_snapshot(proposal_id)
        chain.mine()
        assert system.governor.quorum(snapshot) == 2
        assert system.governor.get_proposal(proposal_id).snapshot_total_supply == 50


class TestQuorum:
    """Quorum 50% для наглядности: supply 4 → quorum 2"""

    @pytest.fixture
    def quorum_system(self):
        chain = Chain(settings=ProtocolSettings(voting_period_blocks=5, quorum_percentage=50))
        deployer = chain.create_account("deployer", to_wei("10"))
        accounts = [chain.create_account(label, to_wei("10")) for label in ("a", "b", "c", "d")]
        system = deploy_system(chain, deployer)
        for account in accounts:
            hatch(chain, system, account)
        return chain, system, accounts

    def test_below_quorum_is_defeated(self, quorum_system) -> None:
        chain, system, (a, *_rest) = quorum_system
        proposal_id = propose(chain, system, a)
        start_voting(chain, system)
        chain.transact(a, system.governor.cast_vote, proposal_id, VoteType.FOR)
        end_voting(chain, system)
        assert system.governor.state(proposal_id) == ProposalState.DEFEATED

    def test_abstain_counts_toward_quorum(self, quorum_system) -> None:
        chain, system, (a, b, *_rest) = quorum_system
        proposal_id = propose(chain, system, a)
        start_voting(chain, system)
        chain.transact(a, system.governor.cast_vote, proposal_id, VoteType.FOR)
        chain.transact(b, system.governor.cast_vote, proposal_id, VoteType.ABSTAIN)
        end_voting(chain, system)

        assert system.governor.proposal_votes(proposal_id).total == 2
        assert system.governor.state(proposal_id) == ProposalState.SUCCEEDED


# =============================================================================
# QUEUE & EXECUTE
# =============================================================================


@pytest.fixture
def succeeded(chain, system, voters, alice):
    """Принятое предложение: (proposal_id, proposal)."""
    proposal = price_proposal(system)
    proposal_id = propose(chain, system, alice, proposal)
    start_voting(chain, system)
    chain.transact(alice, system.governor.cast_vote, proposal_id, VoteType.FOR)
    end_voting(chain, system)
    return proposal_id, proposal


class TestQueueExecute:
    """queue() / execute()"""

    def test_queue_defeated_rejected(self, chain, system, voters, alice) -> None:
        proposal = price_proposal(system)
        proposal_id = propose(chain, system, alice, proposal)
        start_voting(chain, system)
        chain.transact(alice, system.governor.cast_vote, proposal_id, VoteType.AGAINST)
        end_voting(chain, system)

        with pytest.raises(ProposalNotSuccessful):
            chain.transact(alice, system.governor.queue, *queue_args(proposal))

    def test_queue_active_rejected(self, chain, system, voters, alice) -> None:
        proposal = price_proposal(system)
        proposal_id = propose(chain, system, alice, proposal)
        start_voting(chain, system)
        chain.transact(alice, system.governor.cast_vote, proposal_id, VoteType.FOR)
        with pytest.raises(ProposalNotSuccessful):
            chain.transact(alice, system.governor.queue, *queue_args(proposal))

    def test_queue_sets_eta(self, chain, system, succeeded, bob) -> None:
        proposal_id, proposal = succeeded
        receipt = chain.transact(bob, system.governor.queue, *queue_args(proposal))

        min_delay = system.timelock.min_delay()
        assert system.governor.state(proposal_id) == ProposalState.QUEUED
        assert system.governor.proposal_eta(proposal_id) == receipt.timestamp + min_delay
        assert receipt.events_named("ProposalQueued")[0].args["eta"] == receipt.timestamp + min_delay

    def test_execute_requires_queue(self, chain, system, succeeded, bob) -> None:
        _, proposal = succeeded
        with pytest.raises(ProposalNotQueued):
            chain.transact(bob, system.governor.execute, *queue_args(proposal))

    def test_execute_before_delay(self, chain, system, succeeded, bob) -> None:
        proposal_id, proposal = succeeded
        chain.transact(bob, system.governor.queue, *queue_args(proposal))
        with pytest.raises(OperationNotReady):
            chain.transact(bob, system.governor.execute, *queue_args(proposal))
        assert system.governor.state(proposal_id) == ProposalState.QUEUED

    def test_execute_changes_price(self, chain, system, succeeded, bob) -> None:
        proposal_id, proposal = succeeded
        chain.transact(bob, system.governor.queue, *queue_args(proposal))
        chain.advance_time(system.timelock.min_delay())

        chain.transact(bob, system.governor.execute, *queue_args(proposal))

        assert system.crocodiles.egg_price() == NEW_PRICE
        assert system.governor.state(proposal_id) == ProposalState.EXECUTED
        with pytest.raises(ProposalNotQueued):
            chain.transact(bob, system.governor.execute, *queue_args(proposal))

    def test_direct_executor_run_marks_executed(self, chain, system, succeeded, bob, carol) -> None:
        proposal_id, proposal = succeeded
        chain.transact(bob, system.governor.queue, *queue_args(proposal))
        chain.advance_time(system.timelock.min_delay())

        targets, values, calldatas, description_hash = queue_args(proposal)
        operation = Operation.build(targets, values, calldatas, salt=description_hash)
        chain.transact(carol, system.timelock.execute, operation)

        assert system.crocodiles.egg_price() == NEW_PRICE
        assert system.governor.state(proposal_id) == ProposalState.EXECUTED
        with pytest.raises(ProposalNotQueued):
            chain.transact(bob, system.governor.execute, *queue_args(proposal))

    def test_substituted_content_is_unknown(self, chain, system, succeeded, bob) -> None:
        _, proposal = succeeded
        chain.transact(bob, system.governor.queue, *queue_args(proposal))
        chain.advance_time(system.timelock.min_delay())

        targets, values, _, description_hash = queue_args(proposal)
        forged = [encode_function_call("change_price", 1)]
        with pytest.raises(UnknownProposal):
            chain.transact(bob, system.governor.execute, targets, values, forged, description_hash)

    def test_expired_after_grace_period(self, chain, system, succeeded, bob) -> None:
        proposal_id, proposal = succeeded
        chain.transact(bob, system.governor.queue, *queue_args(proposal))
        chain.advance_time(system.timelock.min_delay() + system.timelock.grace_period())

        assert system.governor.state(proposal_id) == ProposalState.EXPIRED
        with pytest.raises(ProposalNotQueued):
            chain.transact(bob, system.governor.execute, *queue_args(proposal))

    def test_proposal_details(self, chain, system, succeeded) -> None:
        proposal_id, _ = succeeded
        details = system.governor.get_proposal(proposal_id)
        assert details.state == ProposalState.SUCCEEDED
        assert details.votes.for_votes == 2
        assert details.snapshot_total_supply == 3
        assert details.eta is None
        assert details.description_hash == hash_text(DESCRIPTION)
