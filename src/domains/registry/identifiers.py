"""Dish identifier encoding.

Dishes are addressed by a human-readable string id in the registry and by a
bytes32 key on chain. A ``DishRef`` is either form; ``normalize`` maps both
to the 32-byte key the contract expects.
"""

from dataclasses import dataclass

from eth_utils import decode_hex, encode_hex, is_hex

BYTES32_LENGTH = 32
# "0x" followed by 64 hex characters
BYTES32_HEX_LENGTH = 2 + BYTES32_LENGTH * 2


@dataclass(frozen=True)
class RawDishRef:
    value: str


@dataclass(frozen=True)
class CanonicalDishRef:
    value: bytes

    def __post_init__(self) -> None:
        if len(self.value) != BYTES32_LENGTH:
            raise ValueError(
                f"Canonical dish ref must be {BYTES32_LENGTH} bytes, got {len(self.value)}"
            )


DishRef = RawDishRef | CanonicalDishRef


def is_bytes32_hex(dish_id: str) -> bool:
    """True if ``dish_id`` is already a well-formed 0x-prefixed 32-byte hex string."""
    return (
        dish_id.startswith("0x")
        and len(dish_id) == BYTES32_HEX_LENGTH
        and is_hex(dish_id)
    )


def parse_dish_ref(dish_id: str) -> DishRef:
    if is_bytes32_hex(dish_id):
        return CanonicalDishRef(decode_hex(dish_id))
    return RawDishRef(dish_id)


def normalize(ref: DishRef) -> bytes:
    """Return the 32-byte on-chain key for a dish reference.

    Canonical refs pass through. Raw refs are UTF-8 encoded, truncated to
    32 bytes and right-padded with zero bytes.
    """
    if isinstance(ref, CanonicalDishRef):
        return ref.value
    encoded = ref.value.encode("utf-8")[:BYTES32_LENGTH]
    return encoded.ljust(BYTES32_LENGTH, b"\x00")


def to_hex(ref: DishRef) -> str:
    """``0x`` followed by the 64 lowercase hex characters of the on-chain key."""
    return encode_hex(normalize(ref))


def dish_id_to_bytes32(dish_id: str) -> str:
    """Hex form of the on-chain key; a well-formed bytes32 id is returned verbatim."""
    if is_bytes32_hex(dish_id):
        return dish_id
    return to_hex(RawDishRef(dish_id))
