"""
ABI — хэширование, адреса и кодек payload вызовов

Payload — канонический JSON {"function": ..., "args": [...]}
(sort_keys, без пробелов), поэтому одинаковый вызов всегда даёт
одинаковые байты и одинаковый proposal id.
"""

import hashlib
import json
from typing import Any, Iterable

from jsonschema import ValidationError

from src.core.contracts import validate_call_data
from src.core.errors import InvalidCallData


def sha3_hex(data: bytes) -> str:
    """SHA3-256 в виде 0x-prefixed hex (64 символа)."""
    return "0x" + hashlib.sha3_256(data).hexdigest()


def hash_text(text: str) -> str:
    """Хэш строки (description hash, аналог ethers.utils.id)."""
    return sha3_hex(text.encode("utf-8"))


def address_from_seed(seed: str) -> str:
    """Детерминированный адрес: последние 20 байт SHA3-256(seed)."""
    return "0x" + hashlib.sha3_256(seed.encode("utf-8")).hexdigest()[-40:]


def contract_address(deployer: str, nonce: int) -> str:
    """
    Адрес контракта из (deployer, nonce).

    Позволяет заранее вычислить адрес контракта, который ещё не развёрнут
    (EggLedger и CrocodileEconomy ссылаются друг на друга).
    """
    return address_from_seed(f"create:{deployer}:{nonce}")


def normalize_address(address: str) -> str:
    """Приведение адреса к lowercase с проверкой формата."""
    if not isinstance(address, str):
        raise ValueError(f"Address must be a string, got {type(address).__name__}")
    value = address.lower()
    if len(value) != 42 or not value.startswith("0x"):
        raise ValueError(f"Malformed address: {address!r}")
    try:
        int(value[2:], 16)
    except ValueError as e:
        raise ValueError(f"Malformed address: {address!r}") from e
    return value


def encode_function_call(function: str, *args: Any) -> bytes:
    """
    Кодирование вызова external-функции.

    Raises:
        InvalidCallData: Если имя функции или аргументы нарушают контракт call_data
    """
    payload = {"function": function, "args": list(args)}
    try:
        validate_call_data(payload)
    except ValidationError as e:
        raise InvalidCallData(f"Cannot encode call to {function!r}: {e.message}") from e
    return json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")


def decode_function_call(payload: bytes) -> tuple[str, list[Any]]:
    """
    Декодирование payload в (function, args).

    Raises:
        InvalidCallData: Если payload не JSON или не соответствует схеме
    """
    try:
        data = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise InvalidCallData(f"Payload is not valid call data: {e}") from e

    try:
        validate_call_data(data)
    except ValidationError as e:
        raise InvalidCallData(f"Payload violates call_data contract: {e.message}") from e

    return data["function"], data["args"]


def hash_calls(
    targets: Iterable[str],
    values: Iterable[int],
    payloads: Iterable[bytes],
    *extra: str,
) -> str:
    """Хэш пакета вызовов (proposal id / operation id)."""
    document = {
        "targets": list(targets),
        "values": list(values),
        "payloads": [p.hex() for p in payloads],
        "extra": list(extra),
    }
    return sha3_hex(json.dumps(document, sort_keys=True, separators=(",", ":")).encode("utf-8"))
