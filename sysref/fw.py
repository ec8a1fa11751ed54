"""Framework types and configuration shared by the components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum

# Serialized sizes, in bytes, of the framework's identifier types.
PACKET_DESCRIPTOR_SIZE = 4
OPCODE_SIZE = 4
CHAN_ID_SIZE = 4
EVENT_ID_SIZE = 4
PRM_ID_SIZE = 4
BUFF_SIZE_TYPE_SIZE = 2
TIME_BASE_STORE_SIZE = 2
TIME_CONTEXT_STORE_SIZE = 1

# Byte values used when a boolean is serialized.
FW_SERIALIZE_TRUE_VALUE = 0xFF
FW_SERIALIZE_FALSE_VALUE = 0x00

FW_CONTEXT_DONT_CARE = 0xFF

FW_OBJ_NAME_MAX_SIZE = 80
FW_OBJ_TO_STRING_BUFFER_SIZE = 255
FW_OBJ_SIMPLE_REG_ENTRIES = 500
FW_OBJ_SIMPLE_REG_BUFF_SIZE = 255
FW_QUEUE_SIMPLE_QUEUE_ENTRIES = 100
FW_QUEUE_NAME_MAX_SIZE = 80
FW_TASK_NAME_MAX_SIZE = 80
FW_ASSERT_TEXT_SIZE = 120
FW_ASSERT_DFL_MSG_LEN = 256

FW_COM_BUFFER_MAX_SIZE = 128
FW_CMD_ARG_BUFFER_MAX_SIZE = FW_COM_BUFFER_MAX_SIZE - OPCODE_SIZE - PACKET_DESCRIPTOR_SIZE
FW_CMD_STRING_MAX_SIZE = 40
FW_CMD_CHECK_RESIDUAL = True
FW_LOG_BUFFER_MAX_SIZE = FW_COM_BUFFER_MAX_SIZE - EVENT_ID_SIZE - PACKET_DESCRIPTOR_SIZE
FW_LOG_STRING_MAX_SIZE = 100
FW_TLM_BUFFER_MAX_SIZE = FW_COM_BUFFER_MAX_SIZE - CHAN_ID_SIZE - PACKET_DESCRIPTOR_SIZE
FW_TLM_STRING_MAX_SIZE = 40
FW_PARAM_BUFFER_MAX_SIZE = FW_COM_BUFFER_MAX_SIZE - PRM_ID_SIZE - PACKET_DESCRIPTOR_SIZE
FW_PARAM_STRING_MAX_SIZE = 40
FW_FILE_BUFFER_MAX_SIZE = 255
FW_INTERNAL_INTERFACE_STRING_MAX_SIZE = 256
FW_LOG_TEXT_BUFFER_SIZE = 256
FW_SERIALIZABLE_TO_STRING_BUFFER_SIZE = 255
FW_ARRAY_TO_STRING_BUFFER_SIZE = 256
FW_FIXED_LENGTH_STRING_SIZE = 256

FW_ENABLE_TEXT_LOGGING = True
FW_USE_TIME_BASE = True
FW_USE_TIME_CONTEXT = True
FW_AMPCS_COMPATIBLE = False


class TimeBase(IntEnum):
    """Origin of a time value."""

    TB_NONE = 0
    TB_PROC_TIME = 1
    TB_WORKSTATION_TIME = 2
    TB_DONT_CARE = 0xFFFF


class CmdResponse(IntEnum):
    """Completion status reported for a command."""

    OK = 0
    INVALID_OPCODE = 1
    VALIDATION_ERROR = 2
    FORMAT_ERROR = 3
    EXECUTION_ERROR = 4
    BUSY = 5


@dataclass
class Buffer:
    """A block of bytes handed between components, with a user context."""

    data: bytearray = field(default_factory=bytearray)
    context: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.data, bytearray):
            self.data = bytearray(self.data)

    @classmethod
    def allocate(cls, size: int, context: int = 0) -> "Buffer":
        """Return a zero-filled buffer of ``size`` bytes."""
        if size < 0:
            raise ValueError(f"buffer size may not be negative: {size}")
        return cls(bytearray(size), context)

    @property
    def size(self) -> int:
        return len(self.data)

    @size.setter
    def size(self, value: int) -> None:
        if value < 0 or value > len(self.data):
            raise ValueError(f"size {value} outside 0..{len(self.data)}")
        del self.data[value:]

    @property
    def valid(self) -> bool:
        """True when the buffer holds at least one byte."""
        return len(self.data) > 0

    def __len__(self) -> int:
        return len(self.data)

    def __bytes__(self) -> bytes:
        return bytes(self.data)


def encode_bool(value: bool) -> bytes:
    """Serialize a boolean to its single wire byte."""
    return bytes([FW_SERIALIZE_TRUE_VALUE if value else FW_SERIALIZE_FALSE_VALUE])


def decode_bool(byte: int | bytes | bytearray) -> bool:
    """Deserialize a boolean; any byte other than the two defined values is an error."""
    if isinstance(byte, (bytes, bytearray)):
        if len(byte) != 1:
            raise ValueError(f"expected exactly one byte, got {len(byte)}")
        byte = byte[0]
    if byte == FW_SERIALIZE_TRUE_VALUE:
        return True
    if byte == FW_SERIALIZE_FALSE_VALUE:
        return False
    raise ValueError(f"invalid serialized boolean value: {byte:#04x}")