"""XBee radio link: passes data through to the radio and drives its AT command mode."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Callable, Optional

from sysref.fw import FW_LOG_STRING_MAX_SIZE, Buffer, CmdResponse


class SendStatus(IntEnum):
    """Result of handing a buffer to the driver."""

    SEND_OK = 0
    SEND_RETRY = 1
    SEND_ERROR = 2


class RecvStatus(IntEnum):
    """Status of data received from the driver."""

    RECV_OK = 0
    RECV_ERROR = 1


class ComSendStatus(IntEnum):
    """Readiness reported to the upstream communications queue."""

    READY = 0
    FAIL = 1


class ComState(IntEnum):
    """States of the exchange with the radio's command mode."""

    ERROR_TIMEOUT = -1
    QUIET_RADIO = 0
    AWAIT_COMMAND_MODE = 1
    AWAIT_COMMAND_RESPONSE = 2
    AWAIT_PASSTHROUGH = 3
    PASSTHROUGH = 4


class ProcessResponse(Enum):
    """Outcome of examining the data received in command mode."""

    PROCESSED_GOOD = "good"
    PROCESSED_ERROR = "error"
    MORE_NEEDED = "more"


@dataclass(frozen=True)
class RadioCommand:
    """An AT command for the radio and the longest response it may produce."""

    command: bytes
    response_length: int

    @property
    def length(self) -> int:
        return len(self.command)


ENTER_COMMAND_MODE = RadioCommand(b"+++", 2)
NODE_IDENTIFIER = RadioCommand(b"ATNI\r", 20)
ENERGY_DENSITY = RadioCommand(b"ATED\r", 3 * 16)
EXIT_COMMAND_MODE = RadioCommand(b"ATCN\r", 2)

ENERGY_DENSITY_CHANNELS = 16


class PortNotConnectedError(RuntimeError):
    """Raised when a component must call an output that was never connected."""


def convert_char(value: int | str) -> int:
    """Convert one ASCII hex digit (0-9, A-F) to its numeric value."""
    code = ord(value) if isinstance(value, str) else value
    if code >= ord("A"):
        return (code - ord("A") + 0x0A) & 0xFF
    return (code - ord("0")) & 0xFF


@dataclass
class XBeePorts:
    """Outputs of the XBee component; unset outputs are unconnected."""

    drv_data_out: Optional[Callable[[Buffer], SendStatus]] = None
    com_data_out: Optional[Callable[[Buffer, RecvStatus], None]] = None
    com_status: Optional[Callable[[ComSendStatus], None]] = None
    allocate: Optional[Callable[[int], Buffer]] = None
    deallocate: Optional[Callable[[Buffer], None]] = None
    cmd_response: Optional[Callable[[int, int, CmdResponse], None]] = None
    node_identifier: Optional[Callable[[str], None]] = None
    energy_density: Optional[Callable[[list], None]] = None


class XBee:
    """Component passing data to an XBee radio and running its command-mode queries."""

    RETRY_LIMIT = 10
    XBEE_QUIESCENT_TIME_MS = 1000
    MAX_COMMAND_DATA = 48
    TIMEOUT_TICKS_1HZ = 10
    QUIET_TICKS_1HZ = XBEE_QUIESCENT_TIME_MS // 1000 + 1

    ENTER_COMMAND_MODE = ENTER_COMMAND_MODE
    NODE_IDENTIFIER = NODE_IDENTIFIER
    ENERGY_DENSITY = ENERGY_DENSITY
    EXIT_COMMAND_MODE = EXIT_COMMAND_MODE

    def __init__(self, name: str, ports: XBeePorts | None = None) -> None:
        self.name = name
        self.ports = ports if ports is not None else XBeePorts()
        self._circular = bytearray()
        self._capacity = self.MAX_COMMAND_DATA + 1
        self._lock = threading.RLock()
        self._state = ComState.PASSTHROUGH
        self._current_command: RadioCommand | None = None
        self._opcode = 0
        self._cmd_seq = 0
        self._timeout_count = 0
        self._reinit = True

    @property
    def state(self) -> ComState:
        return self._state

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def drv_connected(self) -> None:
        """The driver has connected: report readiness if it is owed."""
        self._report_ready()

    def drv_data_in(self, buffer: Buffer, status: RecvStatus) -> None:
        """Take data from the driver: consume it in command mode, otherwise pass it on."""
        with self._lock:
            current = self._state
        in_command = current not in (
            ComState.PASSTHROUGH,
            ComState.ERROR_TIMEOUT,
            ComState.QUIET_RADIO,
        )
        if status == RecvStatus.RECV_OK and in_command:
            free = self._capacity - len(self._circular)
            if len(buffer.data) <= free:
                self._circular.extend(buffer.data)
            self._required("deallocate")(buffer)
            self._state_machine()
        elif current in (ComState.PASSTHROUGH, ComState.QUIET_RADIO):
            self._required("com_data_out")(buffer, status)
        else:
            self._required("deallocate")(buffer)

    def com_data_in(self, buffer: Buffer) -> SendStatus:
        """Send data out through the radio; only possible in passthrough."""
        ready = ComSendStatus.FAIL
        with self._lock:
            if self._state == ComState.PASSTHROUGH:
                status = self._send_with_retry(buffer)
                ready = ComSendStatus.READY if status == SendStatus.SEND_OK else ComSendStatus.FAIL
            else:
                self._reinit = True
        if self.ports.com_status is not None:
            self.ports.com_status(ready)
        return SendStatus.SEND_OK

    def run(self, context: int = 0) -> None:
        """One 1 Hz tick: enter command mode after quieting, or time out of it."""
        with self._lock:
            if self._state == ComState.PASSTHROUGH:
                return
            self._timeout_count += 1
            if self._timeout_count > self.QUIET_TICKS_1HZ and self._state == ComState.QUIET_RADIO:
                self._initiate_command()
            elif self._timeout_count > self.TIMEOUT_TICKS_1HZ:
                self._deinitiate_command(CmdResponse.EXECUTION_ERROR)
                self._state = ComState.PASSTHROUGH

    def report_node_identifier(self, opcode: int, cmd_seq: int) -> None:
        """Command: query and report the radio's node identifier."""
        with self._lock:
            self._stage_command(self.NODE_IDENTIFIER, opcode, cmd_seq)

    def energy_density_scan(self, opcode: int, cmd_seq: int) -> None:
        """Command: scan and report the energy density of each channel."""
        with self._lock:
            self._stage_command(self.ENERGY_DENSITY, opcode, cmd_seq)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _required(self, port: str) -> Callable:
        target = getattr(self.ports, port)
        if target is None:
            raise PortNotConnectedError(f"{self.name}: output {port!r} is not connected")
        return target

    def _send_with_retry(self, buffer: Buffer) -> SendStatus:
        send = self._required("drv_data_out")
        status = SendStatus.SEND_RETRY
        for _ in range(self.RETRY_LIMIT):
            status = send(buffer)
            if status != SendStatus.SEND_RETRY:
                break
        return status

    def _stage_command(self, command: RadioCommand, opcode: int, cmd_seq: int) -> None:
        if self._current_command is not None or self._state != ComState.PASSTHROUGH:
            self._required("cmd_response")(opcode, cmd_seq, CmdResponse.BUSY)
            return
        self._state = ComState.QUIET_RADIO
        self._opcode = opcode
        self._cmd_seq = cmd_seq
        self._current_command = command

    def _initiate_command(self) -> None:
        if self._send_radio_command(self.ENTER_COMMAND_MODE):
            self._state = ComState.AWAIT_COMMAND_MODE
        else:
            self._deinitiate_command(CmdResponse.EXECUTION_ERROR)

    def _deinitiate_command(self, response: CmdResponse) -> bool:
        self._report_ready()
        self._required("cmd_response")(self._opcode, self._cmd_seq, response)
        self._current_command = None
        self._timeout_count = 0
        self._opcode = 0
        self._cmd_seq = 0
        return True

    def _send_radio_command(self, command: RadioCommand) -> bool:
        status = SendStatus.SEND_RETRY
        buffer = self._required("allocate")(command.length)
        fits = len(buffer.data) >= command.length
        if fits:
            buffer.data[: command.length] = command.command
            status = self._send_with_retry(buffer)
        if status != SendStatus.SEND_OK:
            self._timeout_count = 0
        return fits and status == SendStatus.SEND_OK

    def _state_machine(self) -> None:
        response = self._process_response()
        with self._lock:
            if response == ProcessResponse.PROCESSED_ERROR:
                self._state = ComState.ERROR_TIMEOUT
                return
            if response != ProcessResponse.PROCESSED_GOOD:
                return
            if self._state == ComState.AWAIT_COMMAND_MODE:
                if self._current_command is None:
                    raise RuntimeError("command mode entered with no command staged")
                success = self._send_radio_command(self._current_command)
            elif self._state == ComState.AWAIT_COMMAND_RESPONSE:
                success = self._send_radio_command(self.EXIT_COMMAND_MODE)
            elif self._state == ComState.AWAIT_PASSTHROUGH:
                success = self._deinitiate_command(CmdResponse.OK)
            else:
                raise RuntimeError(f"response processed in unexpected state {self._state!r}")
            self._state = ComState(self._state + 1) if success else ComState.ERROR_TIMEOUT

    def _report_ready(self) -> None:
        if self._reinit:
            if self.ports.com_status is not None:
                self.ports.com_status(ComSendStatus.READY)
            self._reinit = False

    def _process_response(self) -> ProcessResponse:
        if not self._circular or self._circular[-1] != ord("\r"):
            return ProcessResponse.MORE_NEEDED
        response = ProcessResponse.MORE_NEEDED
        if self._state != ComState.AWAIT_COMMAND_RESPONSE:
            response = self._process_ok_or_error()
        elif self._current_command is self.NODE_IDENTIFIER:
            response = self._process_node_identifier()
        elif self._current_command is self.ENERGY_DENSITY:
            response = self._process_energy_density()
        self._circular.clear()
        return response

    def _process_ok_or_error(self) -> ProcessResponse:
        if bytes(self._circular[-3:]) == b"OK\r":
            return ProcessResponse.PROCESSED_GOOD
        return ProcessResponse.PROCESSED_ERROR

    def _process_node_identifier(self) -> ProcessResponse:
        assert self._current_command is not None
        peek_size = min(
            FW_LOG_STRING_MAX_SIZE,
            self._current_command.response_length + 1,
            len(self._circular),
        )
        raw = bytes(self._circular[len(self._circular) - peek_size :])[: peek_size - 1]
        identifier = raw.split(b"\0", 1)[0].decode("latin-1")
        if self.ports.node_identifier is not None:
            self.ports.node_identifier(identifier)
        return ProcessResponse.PROCESSED_GOOD

    def _process_energy_density(self) -> ProcessResponse:
        density: list[int] = []
        for _ in range(ENERGY_DENSITY_CHANNELS):
            reading = self._circular[:3]
            if len(reading) < 3 or reading[2] != ord(","):
                return ProcessResponse.PROCESSED_ERROR
            density.append((convert_char(reading[0]) << 4 | convert_char(reading[1])) & 0xFF)
            del self._circular[:3]
        if self.ports.energy_density is not None:
            self.ports.energy_density(density)
        return ProcessResponse.PROCESSED_GOOD