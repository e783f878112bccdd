"""
Domain models and value objects.

Contains fundamental domain entities: wei units, Crocodile, governance
enums and proposal views, event records.
"""

from src.core.domain.crocodile import ADDRESS_PATTERN, ZERO_ADDRESS, Crocodile
from src.core.domain.events import Event
from src.core.domain.governance import (
    ProposalDetails,
    ProposalState,
    ProposalVotes,
    VoteType,
)
from src.core.domain.units import (
    BPS_DENOMINATOR,
    DEFAULT_EGG_PRICE_WEI,
    DEFAULT_SELL_REFUND_BPS,
    WEI_PER_ETHER,
    bps_of,
    eggs_for_payment,
    format_ether,
    from_wei,
    quorum_votes,
    to_wei,
    validate_wei,
)

__all__ = [
    # Units module
    "WEI_PER_ETHER",
    "BPS_DENOMINATOR",
    "DEFAULT_EGG_PRICE_WEI",
    "DEFAULT_SELL_REFUND_BPS",
    "to_wei",
    "from_wei",
    "format_ether",
    "bps_of",
    "eggs_for_payment",
    "quorum_votes",
    "validate_wei",
    # Crocodile model
    "ADDRESS_PATTERN",
    "ZERO_ADDRESS",
    "Crocodile",
    # Governance models
    "VoteType",
    "ProposalState",
    "ProposalVotes",
    "ProposalDetails",
    # Events
    "Event",
]
