"""Inertial measurement unit on an I2C bus: power control, configuration and telemetry."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Optional

from sysref.fw import Buffer, CmdResponse
from sysref.xbee import PortNotConnectedError


def _f32(value: float) -> float:
    """Round a float to single precision."""
    return struct.unpack("<f", struct.pack("<f", value))[0]


class I2cStatus(IntEnum):
    """Result of an I2C transaction."""

    I2C_OK = 0
    I2C_ADDRESS_ERR = 1
    I2C_WRITE_ERR = 2
    I2C_READ_ERR = 3
    I2C_OTHER_ERR = 4


class I2cDevAddr(IntEnum):
    """I2C addresses the device answers on, chosen by its AD0 pin."""

    AD0_0 = 0x68
    AD0_1 = 0x69


class PowerState(IntEnum):
    """Power state of the device."""

    OFF = 0
    ON = 1


Vector = tuple[float, float, float]


def deserialize_vector(data: bytes | bytearray | Buffer, scale_factor: float) -> Vector:
    """Unpack three big-endian signed 16-bit values and divide each by ``scale_factor``."""
    raw = bytes(data)
    if len(raw) < 6:
        raise ValueError(f"need at least 6 bytes for a vector, got {len(raw)}")
    scale = _f32(scale_factor)
    x, y, z = struct.unpack(">hhh", raw[:6])
    return (_f32(x / scale), _f32(y / scale), _f32(z / scale))


@dataclass
class ImuPorts:
    """Outputs of the IMU component; unset outputs are unconnected."""

    write: Optional[Callable[[int, Buffer], I2cStatus]] = None
    read: Optional[Callable[[int, Buffer], I2cStatus]] = None
    cmd_response: Optional[Callable[[int, int, CmdResponse], None]] = None
    accelerometer: Optional[Callable[[Vector], None]] = None
    gyroscope: Optional[Callable[[Vector], None]] = None
    power_status: Optional[Callable[[PowerState], None]] = None
    set_up_config_error: Optional[Callable[[I2cStatus], None]] = None
    power_mode_error: Optional[Callable[[I2cStatus], None]] = None
    telemetry_error: Optional[Callable[[I2cStatus], None]] = None


class Imu:
    """MPU-6050 style IMU reporting accelerometer and gyroscope readings."""

    POWER_MGMT_ADDR = 0x6B
    IMU_MAX_DATA_SIZE_BYTES = 6
    IMU_REG_SIZE_BYTES = 1
    IMU_RAW_ACCEL_ADDR = 0x3B
    IMU_RAW_GYRO_ADDR = 0x43
    GYRO_CONFIG_ADDR = 0x1B
    ACCEL_CONFIG_ADDR = 0x1C
    POWER_ON_VALUE = 0
    POWER_OFF_VALUE = 0x40
    ACCEL_SCALE_FACTOR = _f32(16384.0)
    GYRO_SCALE_FACTOR = _f32(131.072)

    def __init__(self, name: str, ports: ImuPorts | None = None) -> None:
        self.name = name
        self.ports = ports if ports is not None else ImuPorts()
        self._address = I2cDevAddr.AD0_0
        self._power = PowerState.OFF

    @property
    def power(self) -> PowerState:
        return self._power

    @property
    def address(self) -> I2cDevAddr:
        return self._address

    def setup(self, dev_address: I2cDevAddr | int) -> None:
        """Select the I2C address of the device."""
        self._address = I2cDevAddr(dev_address)

    def run(self, context: int = 0) -> None:
        """Rate-group tick: read and report both sensors while powered."""
        if self._power == PowerState.ON:
            self._update(self.IMU_RAW_ACCEL_ADDR, self.ACCEL_SCALE_FACTOR, self.ports.accelerometer)
            self._update(self.IMU_RAW_GYRO_ADDR, self.GYRO_SCALE_FACTOR, self.ports.gyroscope)

    def power_switch(self, opcode: int, cmd_seq: int, power_state: PowerState | int) -> None:
        """Command: turn the device on or off."""
        state = PowerState(power_state)
        self._set_power(state)
        self._emit(self.ports.power_status, state)
        self._required("cmd_response")(opcode, cmd_seq, CmdResponse.OK)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _required(self, port: str) -> Callable:
        target = getattr(self.ports, port)
        if target is None:
            raise PortNotConnectedError(f"{self.name}: output {port!r} is not connected")
        return target

    @staticmethod
    def _emit(target: Optional[Callable], *args) -> None:
        if target is not None:
            target(*args)

    def _write(self, payload: bytes) -> I2cStatus:
        return I2cStatus(self._required("write")(int(self._address), Buffer(bytearray(payload))))

    def _read_register_block(self, start_register: int, buffer: Buffer) -> I2cStatus:
        status = self._write(bytes([start_register]))
        if status == I2cStatus.I2C_OK:
            status = I2cStatus(self._required("read")(int(self._address), buffer))
        return status

    def _config(self) -> None:
        for register in (self.GYRO_CONFIG_ADDR, self.ACCEL_CONFIG_ADDR):
            status = self._write(bytes([register, 0]))
            if status != I2cStatus.I2C_OK:
                self._emit(self.ports.set_up_config_error, status)

    def _set_power(self, state: PowerState) -> None:
        if state == self._power:
            return
        value = self.POWER_ON_VALUE if state == PowerState.ON else self.POWER_OFF_VALUE
        status = self._write(bytes([self.POWER_MGMT_ADDR, value]))
        if status != I2cStatus.I2C_OK:
            self._emit(self.ports.power_mode_error, status)
            return
        self._power = state
        if self._power == PowerState.ON:
            self._config()

    def _update(self, register: int, scale: float, report: Optional[Callable[[Vector], None]]) -> None:
        buffer = Buffer.allocate(self.IMU_MAX_DATA_SIZE_BYTES)
        status = self._read_register_block(register, buffer)
        if status == I2cStatus.I2C_OK and len(buffer.data) == self.IMU_MAX_DATA_SIZE_BYTES:
            self._emit(report, deserialize_vector(buffer, scale))
        else:
            self._emit(self.ports.telemetry_error, status)