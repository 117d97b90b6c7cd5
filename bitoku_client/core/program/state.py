"""Readers for the two account types owned by the Bitoku agent program."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from construct import Bytes, ConstructError, Int8ul, Struct
from solders.pubkey import Pubkey

from ..errors import InvalidInput
from .instructions import DATA_SIZE, NAME_SIZE, RequestType

BOOKKEEPER_LAYOUT = Struct(
    "status" / Bytes(32),
    "next_id" / Int8ul,
)

REQUEST_LAYOUT = Struct(
    "client_id" / Int8ul,
    "requester" / Bytes(32),
    "request_type" / Int8ul,
    "name" / Bytes(NAME_SIZE),
    "file_id" / Int8ul,
    "tail" / Bytes(DATA_SIZE),
)

BOOKKEEPER_SIZE = BOOKKEEPER_LAYOUT.sizeof()
REQUEST_SIZE = REQUEST_LAYOUT.sizeof()


@dataclass(frozen=True)
class BookKeeper:
    status: bytes
    next_id: int

    @classmethod
    def decode(cls, raw: bytes) -> "BookKeeper":
        if len(raw) < BOOKKEEPER_SIZE:
            raise InvalidInput(f"bookkeeper account is {len(raw)} bytes, expected {BOOKKEEPER_SIZE}")
        parsed = BOOKKEEPER_LAYOUT.parse(raw)
        return cls(status=parsed.status, next_id=parsed.next_id)

    def is_registered(self, client_id: int) -> bool:
        if not 0 <= client_id < len(self.status) * 8:
            raise InvalidInput(f"client id {client_id} is outside 0..{len(self.status) * 8 - 1}")
        byte_index, bit = divmod(client_id, 8)
        return bool((self.status[byte_index] >> bit) & 1)

    @property
    def registered_clients(self) -> list[int]:
        return [client_id for client_id in range(len(self.status) * 8) if self.is_registered(client_id)]


@dataclass(frozen=True)
class RequestRecord:
    """Last request stored in a caller's request account."""
    client_id: int
    requester: Pubkey
    request_type: Optional[RequestType]
    name: bytes
    file_id: int
    tail: bytes

    @classmethod
    def decode(cls, raw: bytes) -> "RequestRecord":
        if len(raw) < REQUEST_SIZE:
            raise InvalidInput(f"request account is {len(raw)} bytes, expected {REQUEST_SIZE}")
        try:
            parsed = REQUEST_LAYOUT.parse(raw)
        except ConstructError as exc:
            raise InvalidInput(f"malformed request account: {exc}") from exc
        try:
            request_type: Optional[RequestType] = RequestType(parsed.request_type)
        except ValueError:
            request_type = None
        return cls(
            client_id=parsed.client_id,
            requester=Pubkey(parsed.requester),
            request_type=request_type,
            name=parsed.name.rstrip(b"\x00"),
            file_id=parsed.file_id,
            tail=parsed.tail,
        )

    @property
    def data(self) -> bytes:
        return self.tail.rstrip(b"\x00")

    @property
    def position(self) -> Optional[int]:
        if self.request_type != RequestType.SET_POSITION:
            return None
        return int.from_bytes(self.tail[:8], "little")


__all__ = ["BookKeeper", "RequestRecord", "BOOKKEEPER_SIZE", "REQUEST_SIZE"]
