"""
Governance — голосование крокодилами и отложенное исполнение.
"""

from .governor import GovernanceController, GovernorStorage, ProposalCore, ProposalTally
from .timelock import DONE_TIMESTAMP, Operation, Role, TimeDelayedExecutor, TimelockStorage

__all__ = [
    # Governor
    "GovernanceController",
    "GovernorStorage",
    "ProposalCore",
    "ProposalTally",
    # Timelock
    "TimeDelayedExecutor",
    "TimelockStorage",
    "Operation",
    "Role",
    "DONE_TIMESTAMP",
]
