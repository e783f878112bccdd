"""Host — локальная среда исполнения контрактов (блоки, балансы, вызовы, события)."""

from .abi import (
    contract_address,
    decode_function_call,
    encode_function_call,
    hash_calls,
    hash_text,
    normalize_address,
    sha3_hex,
)
from .chain import GENESIS_TIMESTAMP, CallFrame, Chain, Receipt
from .contract import Contract, external, is_external
from .entropy import BlockEntropy, EntropySource, SequenceEntropy

__all__ = [
    "Chain",
    "CallFrame",
    "Receipt",
    "GENESIS_TIMESTAMP",
    "Contract",
    "external",
    "is_external",
    "EntropySource",
    "BlockEntropy",
    "SequenceEntropy",
    "contract_address",
    "encode_function_call",
    "decode_function_call",
    "hash_calls",
    "hash_text",
    "normalize_address",
    "sha3_hex",
]
