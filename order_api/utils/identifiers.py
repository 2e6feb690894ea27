"""
Identifier helpers

Orders, items, products, services and statuses are keyed by 128-bit
identifiers. They travel through the code as uuid.UUID and are persisted as
their 16-byte big-endian representation.
"""

from typing import Optional, Union
from uuid import UUID

IdentifierLike = Union[UUID, bytes, bytearray, memoryview]


def id_to_bytes(identifier: IdentifierLike) -> bytes:
    """Return the 16-byte form of an identifier"""
    if isinstance(identifier, UUID):
        return identifier.bytes
    value = bytes(identifier)
    if len(value) != 16:
        raise ValueError(f"Identifier must be 16 bytes, got {len(value)}")
    return value


def id_from_bytes(value: Optional[IdentifierLike]) -> Optional[UUID]:
    """Convert a stored 16-byte value (bytes or memoryview) back to a UUID"""
    if value is None:
        return None
    if isinstance(value, UUID):
        return value
    return UUID(bytes=bytes(value))


def same_identifier(left: Optional[IdentifierLike], right: Optional[IdentifierLike]) -> bool:
    """Byte-exact identifier equality"""
    if left is None or right is None:
        return False
    return id_to_bytes(left) == id_to_bytes(right)
