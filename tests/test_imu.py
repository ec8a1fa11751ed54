from collections import defaultdict, deque

import pytest
from hypothesis import given
from hypothesis import strategies as st

from sysref.fw import Buffer, CmdResponse
from sysref.imu import (
    I2cDevAddr,
    I2cStatus,
    Imu,
    ImuPorts,
    PowerState,
    deserialize_vector,
)
from sysref.xbee import PortNotConnectedError

ADDRESS = I2cDevAddr.AD0_0

ACCEL_SAMPLES = [
    b"\x40\x00\xc0\x00\x20\x00",
    b"\x00\x00\x40\x00\x00\x00",
    b"\x80\x00\x00\x00\x7f\xff",
    b"\x20\x00\x20\x00\x20\x00",
    b"\xff\xff\x00\x01\x00\x00",
]
ACCEL_EXPECTED = [
    (1.0, -1.0, 0.5),
    (0.0, 1.0, 0.0),
    (-2.0, 0.0, 32767 / 16384),
    (0.5, 0.5, 0.5),
    (-1 / 16384, 1 / 16384, 0.0),
]
GYRO_SAMPLE = b"\x00\x83\xfe\xfa\x00\x00"  # 131, -262, 0


class FakeBus:
    def __init__(self):
        self.read_status = I2cStatus.I2C_OK
        self.write_status = I2cStatus.I2C_OK
        self.register = None
        self.writes = []
        self.reads = []
        self.samples = {
            Imu.IMU_RAW_ACCEL_ADDR: deque(ACCEL_SAMPLES),
            Imu.IMU_RAW_GYRO_ADDR: deque([GYRO_SAMPLE] * 5),
        }

    def write(self, addr, buffer):
        self.writes.append((addr, bytes(buffer)))
        if len(buffer) == 1:
            self.register = buffer.data[0]
        if self.write_status == I2cStatus.I2C_ADDRESS_ERR:
            self.write_status = I2cStatus.I2C_WRITE_ERR
            return I2cStatus.I2C_OK
        return self.write_status

    def read(self, addr, buffer):
        self.reads.append((addr, len(buffer)))
        if self.read_status == I2cStatus.I2C_OK:
            buffer.data[:] = self.samples[self.register].popleft()
        return self.read_status


@pytest.fixture
def harness():
    bus = FakeBus()
    history = defaultdict(list)

    def recorder(key):
        return lambda *args: history[key].append(args if len(args) > 1 else args[0])

    ports = ImuPorts(
        write=bus.write,
        read=bus.read,
        cmd_response=recorder("cmd_response"),
        accelerometer=recorder("accelerometer"),
        gyroscope=recorder("gyroscope"),
        power_status=recorder("power_status"),
        set_up_config_error=recorder("set_up_config_error"),
        power_mode_error=recorder("power_mode_error"),
        telemetry_error=recorder("telemetry_error"),
    )
    imu = Imu("Imu", ports)
    imu.setup(ADDRESS)
    return imu, bus, history


def test_get_accel_tlm(harness):
    imu, bus, history = harness
    imu.power_switch(0, 0, PowerState.ON)
    for _ in range(5):
        imu.run(0)
    assert len(history["accelerometer"]) == 5
    for got, expected in zip(history["accelerometer"], ACCEL_EXPECTED):
        assert got == pytest.approx(expected, rel=1e-6)


def test_get_gyro_tlm(harness):
    imu, bus, history = harness
    imu.power_switch(0, 0, PowerState.ON)
    for _ in range(5):
        imu.run(0)
    assert len(history["gyroscope"]) == 5
    for got in history["gyroscope"]:
        assert got == pytest.approx((0.99945068, -1.99890136, 0.0), rel=1e-6)


def test_all_transactions_use_configured_address(harness):
    imu, bus, _ = harness
    imu.power_switch(0, 0, PowerState.ON)
    imu.run(0)
    assert {addr for addr, _ in bus.writes + bus.reads} == {0x68}
    assert bus.reads == [(0x68, 6), (0x68, 6)]


def test_tlm_error(harness):
    imu, bus, history = harness
    imu.power_switch(0, 0, PowerState.ON)
    bus.read_status = I2cStatus.I2C_OTHER_ERR
    bus.write_status = I2cStatus.I2C_OTHER_ERR
    imu.run(0)
    assert history["telemetry_error"] == [I2cStatus.I2C_OTHER_ERR, I2cStatus.I2C_OTHER_ERR]
    assert history["accelerometer"] == []


def test_read_failure_reports_read_status(harness):
    imu, bus, history = harness
    imu.power_switch(0, 0, PowerState.ON)
    bus.read_status = I2cStatus.I2C_READ_ERR
    imu.run(0)
    assert history["telemetry_error"] == [I2cStatus.I2C_READ_ERR, I2cStatus.I2C_READ_ERR]


def test_power_error(harness):
    imu, bus, history = harness
    bus.write_status = I2cStatus.I2C_WRITE_ERR
    imu.power_switch(0, 0, PowerState.OFF)
    assert history["power_mode_error"] == []
    imu.power_switch(0, 0, PowerState.ON)
    assert history["power_mode_error"] == [I2cStatus.I2C_WRITE_ERR]
    assert history["set_up_config_error"] == []
    assert imu.power == PowerState.OFF


def test_setup_error(harness):
    imu, bus, history = harness
    bus.write_status = I2cStatus.I2C_ADDRESS_ERR
    imu.power_switch(0, 0, PowerState.ON)
    assert history["set_up_config_error"] == [I2cStatus.I2C_WRITE_ERR, I2cStatus.I2C_WRITE_ERR]
    assert imu.power == PowerState.ON


def test_power_on_writes_power_then_config(harness):
    imu, bus, history = harness
    imu.power_switch(7, 3, PowerState.ON)
    assert [data for _, data in bus.writes] == [b"\x6b\x00", b"\x1b\x00", b"\x1c\x00"]
    assert history["power_status"] == [PowerState.ON]
    assert history["cmd_response"] == [(7, 3, CmdResponse.OK)]


def test_power_off_writes_sleep_value(harness):
    imu, bus, _ = harness
    imu.power_switch(0, 0, PowerState.ON)
    bus.writes.clear()
    imu.power_switch(0, 0, PowerState.OFF)
    assert bus.writes == [(0x68, b"\x6b\x40")]
    assert imu.power == PowerState.OFF


def test_run_while_off_does_nothing(harness):
    imu, bus, history = harness
    imu.run(0)
    assert bus.writes == [] and bus.reads == []
    assert history["accelerometer"] == []


def test_deserialize_vector_pinned():
    assert deserialize_vector(b"\x40\x00\xc0\x00\x20\x00", 16384.0) == (1.0, -1.0, 0.5)


def test_deserialize_vector_accepts_buffer():
    assert deserialize_vector(Buffer(b"\x00\x02\x00\x04\xff\xfe"), 2.0) == (1.0, 2.0, -1.0)


def test_deserialize_vector_short_data():
    with pytest.raises(ValueError):
        deserialize_vector(b"\x00\x01\x02", 1.0)


@given(st.binary(min_size=6, max_size=6))
def test_deserialize_vector_unscaled_is_integral(data):
    vector = deserialize_vector(data, 1.0)
    assert all(v == int(v) and -32768 <= v <= 32767 for v in vector)


def test_missing_write_port_raises():
    imu = Imu("Imu")
    with pytest.raises(PortNotConnectedError):
        imu.power_switch(0, 0, PowerState.ON)


def test_setup_rejects_unknown_address():
    imu = Imu("Imu")
    imu.setup(0x69)
    assert imu.address == I2cDevAddr.AD0_1
    with pytest.raises(ValueError):
        imu.setup(0x10)