"""
Bitoku agent program instructions.

Each opcode has a fixed-size binary layout and a fixed account list:

    InitBookkeeper       [0]                                   4 accounts
    CreateClientAccount  [1]                                   5 accounts
    DeleteClient         [2][client_id]                        3 accounts
    SendRequest          [3][client_id][request_type][name:128]
                         [file_id][position:u64 LE][data:512]  2 accounts

Usage:
    encoder = InstructionEncoder(AddressDeriver(program_id))
    ix = encoder.send_request(
        caller,
        SendRequestArgs(RequestType.CREATE_BUCKET, name=b"photos"),
    )
    ix.payload, ix.accounts
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Tuple, Union

from construct import Bytes, Const, ConstructError, Int8ul, Int64ul, Struct
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.sysvar import RENT as RENT_SYSVAR_ID

from ..errors import InvalidInput, PayloadTooLarge
from .addresses import AddressDeriver

NAME_SIZE = 128
DATA_SIZE = 512
U8_MAX = 0xFF
U64_MAX = 0xFFFF_FFFF_FFFF_FFFF


class Opcode(IntEnum):
    """Instruction tag, first byte of every payload."""
    INIT_BOOKKEEPER = 0
    CREATE_CLIENT_ACCOUNT = 1
    DELETE_CLIENT = 2
    SEND_REQUEST = 3


class RequestType(IntEnum):
    """Storage request carried by SendRequest."""
    CREATE_BUCKET = 0
    CREATE_FILE = 1
    WRITE_FILE = 2
    CLOSE_FILE = 3
    DELETE_FILE = 4
    SET_POSITION = 5
    OPEN_FILE = 6
    READ_FILE = 7


INIT_BOOKKEEPER_LAYOUT = Struct(
    "opcode" / Const(int(Opcode.INIT_BOOKKEEPER), Int8ul),
)
CREATE_CLIENT_ACCOUNT_LAYOUT = Struct(
    "opcode" / Const(int(Opcode.CREATE_CLIENT_ACCOUNT), Int8ul),
)
DELETE_CLIENT_LAYOUT = Struct(
    "opcode" / Const(int(Opcode.DELETE_CLIENT), Int8ul),
    "client_id" / Int8ul,
)
SEND_REQUEST_LAYOUT = Struct(
    "opcode" / Const(int(Opcode.SEND_REQUEST), Int8ul),
    "client_id" / Int8ul,
    "request_type" / Int8ul,
    "name" / Bytes(NAME_SIZE),
    "file_id" / Int8ul,
    "position" / Int64ul,
    "data" / Bytes(DATA_SIZE),
)

LAYOUTS = {
    Opcode.INIT_BOOKKEEPER: INIT_BOOKKEEPER_LAYOUT,
    Opcode.CREATE_CLIENT_ACCOUNT: CREATE_CLIENT_ACCOUNT_LAYOUT,
    Opcode.DELETE_CLIENT: DELETE_CLIENT_LAYOUT,
    Opcode.SEND_REQUEST: SEND_REQUEST_LAYOUT,
}

PAYLOAD_SIZES = {
    Opcode.INIT_BOOKKEEPER: 1,
    Opcode.CREATE_CLIENT_ACCOUNT: 1,
    Opcode.DELETE_CLIENT: 2,
    Opcode.SEND_REQUEST: 1 + 1 + 1 + NAME_SIZE + 1 + 8 + DATA_SIZE,
}

for _opcode, _layout in LAYOUTS.items():
    if _layout.sizeof() != PAYLOAD_SIZES[_opcode]:
        raise RuntimeError(f"{_opcode.name} layout is {_layout.sizeof()} bytes, expected {PAYLOAD_SIZES[_opcode]}")


BytesLike = Union[bytes, bytearray, str]


@dataclass(frozen=True)
class AccountRef:
    address: Pubkey
    is_signer: bool
    is_writable: bool

    def to_meta(self) -> AccountMeta:
        return AccountMeta(pubkey=self.address, is_signer=self.is_signer, is_writable=self.is_writable)


@dataclass(frozen=True)
class EncodedInstruction:
    """Payload and accounts for one program instruction. Immutable."""
    opcode: Opcode
    program_id: Pubkey
    payload: bytes
    accounts: Tuple[AccountRef, ...]

    def to_instruction(self) -> Instruction:
        return Instruction(
            program_id=self.program_id,
            data=self.payload,
            accounts=[account.to_meta() for account in self.accounts],
        )


@dataclass(frozen=True)
class DeleteClientArgs:
    client_id: int = 0


@dataclass(frozen=True)
class SendRequestArgs:
    request_type: RequestType
    name: bytes = b""
    file_id: int = 0
    position: int = 0
    data: bytes = b""
    client_id: int = 0

    @property
    def name_text(self) -> str:
        return self.name.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class DecodedInstruction:
    """Result of the reference decoder."""
    opcode: Opcode
    client_id: Optional[int] = None
    request: Optional[SendRequestArgs] = None


def _as_bytes(value: BytesLike, field: str) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    raise InvalidInput(f"{field} must be str or bytes, got {type(value).__name__}", field=field)


def pad_field(value: BytesLike, size: int, field: str) -> bytes:
    """Right-pad with zero bytes to exactly ``size``. Never truncates."""
    raw = _as_bytes(value, field)
    if len(raw) > size:
        raise PayloadTooLarge(field, len(raw), size)
    return raw.ljust(size, b"\x00")


def _check_int(value: int, field: str, maximum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput(f"{field} must be an integer, got {type(value).__name__}", field=field)
    if not 0 <= value <= maximum:
        raise InvalidInput(f"{field} must be between 0 and {maximum}, got {value}", field=field)
    return value


def _request_type(value: Union[RequestType, int]) -> RequestType:
    _check_int(value, "request_type", U8_MAX)
    try:
        return RequestType(value)
    except ValueError as exc:
        raise InvalidInput(f"unknown request type {value}", field="request_type") from exc


def _opcode(value: Union[Opcode, int]) -> Opcode:
    try:
        return Opcode(value)
    except ValueError as exc:
        raise InvalidInput(f"unknown opcode {value}", field="opcode") from exc


def encode_payload(opcode: Opcode, args: Union[None, DeleteClientArgs, SendRequestArgs] = None) -> bytes:
    """Serialize the payload for ``opcode``. All validation happens before building."""
    opcode = _opcode(opcode)
    layout = LAYOUTS[opcode]

    if opcode in (Opcode.INIT_BOOKKEEPER, Opcode.CREATE_CLIENT_ACCOUNT):
        fields = {}
    elif opcode == Opcode.DELETE_CLIENT:
        args = args or DeleteClientArgs()
        fields = {"client_id": _check_int(args.client_id, "client_id", U8_MAX)}
    else:
        if not isinstance(args, SendRequestArgs):
            raise InvalidInput("SendRequest needs SendRequestArgs")
        fields = {
            "client_id": _check_int(args.client_id, "client_id", U8_MAX),
            "request_type": int(_request_type(args.request_type)),
            "name": pad_field(args.name, NAME_SIZE, "name"),
            "file_id": _check_int(args.file_id, "file_id", U8_MAX),
            "position": _check_int(args.position, "position", U64_MAX),
            "data": pad_field(args.data, DATA_SIZE, "data"),
        }

    return layout.build(fields)


def decode_payload(payload: bytes) -> DecodedInstruction:
    """
    Reference decoder, the inverse of ``encode_payload``.

    Name and data are zero padded on the wire, so trailing ``\x00`` bytes are
    stripped on decode: ``data=b"ab\x00"`` comes back as ``b"ab"``.
    """
    if not payload:
        raise InvalidInput("empty payload")
    opcode = _opcode(payload[0])
    if len(payload) != PAYLOAD_SIZES[opcode]:
        raise InvalidInput(f"{opcode.name} payload must be {PAYLOAD_SIZES[opcode]} bytes, got {len(payload)}")

    try:
        parsed = LAYOUTS[opcode].parse(payload)
    except ConstructError as exc:
        raise InvalidInput(f"malformed {opcode.name} payload: {exc}") from exc

    if opcode == Opcode.DELETE_CLIENT:
        return DecodedInstruction(opcode=opcode, client_id=parsed.client_id)
    if opcode == Opcode.SEND_REQUEST:
        request = SendRequestArgs(
            request_type=_request_type(parsed.request_type),
            name=parsed.name.rstrip(b"\x00"),
            file_id=parsed.file_id,
            position=parsed.position,
            data=parsed.data.rstrip(b"\x00"),
            client_id=parsed.client_id,
        )
        return DecodedInstruction(opcode=opcode, client_id=parsed.client_id, request=request)
    return DecodedInstruction(opcode=opcode)


class InstructionEncoder:
    """Builds program instructions for one caller-facing program deployment."""

    def __init__(self, deriver: AddressDeriver):
        self.deriver = deriver

    @property
    def program_id(self) -> Pubkey:
        return self.deriver.program_id

    def encode(
        self,
        opcode: Opcode,
        caller: Pubkey,
        args: Union[None, DeleteClientArgs, SendRequestArgs] = None,
    ) -> EncodedInstruction:
        opcode = _opcode(opcode)
        payload = encode_payload(opcode, args)
        return EncodedInstruction(
            opcode=opcode,
            program_id=self.program_id,
            payload=payload,
            accounts=self.accounts_for(opcode, caller),
        )

    def accounts_for(self, opcode: Opcode, caller: Pubkey) -> Tuple[AccountRef, ...]:
        payer = AccountRef(caller, is_signer=True, is_writable=True)

        if opcode == Opcode.INIT_BOOKKEEPER:
            return (
                payer,
                AccountRef(self.deriver.bookkeeper().address, is_signer=False, is_writable=True),
                AccountRef(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
                AccountRef(RENT_SYSVAR_ID, is_signer=False, is_writable=False),
            )

        request = AccountRef(self.deriver.request_account(caller).address, is_signer=False, is_writable=True)
        if opcode == Opcode.SEND_REQUEST:
            return (payer, request)

        bookkeeper = AccountRef(self.deriver.bookkeeper().address, is_signer=False, is_writable=True)
        if opcode == Opcode.DELETE_CLIENT:
            return (payer, bookkeeper, request)

        return (
            payer,
            bookkeeper,
            request,
            AccountRef(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
            AccountRef(RENT_SYSVAR_ID, is_signer=False, is_writable=False),
        )

    def init_bookkeeper(self, caller: Pubkey) -> EncodedInstruction:
        return self.encode(Opcode.INIT_BOOKKEEPER, caller)

    def create_client_account(self, caller: Pubkey) -> EncodedInstruction:
        return self.encode(Opcode.CREATE_CLIENT_ACCOUNT, caller)

    def delete_client(self, caller: Pubkey, client_id: int = 0) -> EncodedInstruction:
        return self.encode(Opcode.DELETE_CLIENT, caller, DeleteClientArgs(client_id=client_id))

    def send_request(self, caller: Pubkey, args: SendRequestArgs) -> EncodedInstruction:
        return self.encode(Opcode.SEND_REQUEST, caller, args)


__all__ = [
    "Opcode",
    "RequestType",
    "AccountRef",
    "EncodedInstruction",
    "DeleteClientArgs",
    "SendRequestArgs",
    "DecodedInstruction",
    "InstructionEncoder",
    "encode_payload",
    "decode_payload",
    "pad_field",
    "LAYOUTS",
    "PAYLOAD_SIZES",
    "NAME_SIZE",
    "DATA_SIZE",
]
