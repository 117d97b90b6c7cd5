"""
Bitoku agent program wire contract.

Provides:
- AddressDeriver: program-derived addresses (bookkeeper, per-caller request account)
- InstructionEncoder: fixed-layout payloads and account lists per opcode
- BookKeeper / RequestRecord: readers for the program's accounts
"""

from .addresses import (
    AddressDeriver,
    DerivedAddress,
    find_program_address,
    BOOKKEEPER_SEED,
    REQUEST_SEED,
)

from .instructions import (
    Opcode,
    RequestType,
    AccountRef,
    EncodedInstruction,
    DeleteClientArgs,
    SendRequestArgs,
    DecodedInstruction,
    InstructionEncoder,
    encode_payload,
    decode_payload,
    PAYLOAD_SIZES,
    NAME_SIZE,
    DATA_SIZE,
)

from .state import (
    BookKeeper,
    RequestRecord,
)

__all__ = [
    # Addresses
    "AddressDeriver",
    "DerivedAddress",
    "find_program_address",
    "BOOKKEEPER_SEED",
    "REQUEST_SEED",
    # Instructions
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
    "PAYLOAD_SIZES",
    "NAME_SIZE",
    "DATA_SIZE",
    # State
    "BookKeeper",
    "RequestRecord",
]
