# sysref

Components for a small flight-software system, written as plain Python
objects that talk to the outside world through ports you supply.

## What is in the package

- `sysref.fw` — framework basics: command responses (`CmdResponse`), time
  bases (`TimeBase`), a byte `Buffer` with a context value, the framework's
  size limits, and the boolean wire encoding (`encode_bool`, `decode_bool`;
  `decode_bool` raises `ValueError` for any byte other than `0xFF` or `0x00`).
- `sysref.config` — the deployment's configuration values, the
  `TopologyState` used to build a topology (host name and port number), and
  the health-ping thresholds (`PingEntry`, looked up by component name with
  `ping_entry`, which raises `KeyError` for an unknown name).
- `sysref.xbee` — the `XBee` radio component. In pass-through it sends data
  to the radio (retrying up to ten times while the driver asks for a retry)
  and hands received data on. On command (`report_node_identifier`,
  `energy_density_scan`) it quiets the radio, enters AT command mode, sends
  the query, reports the result and returns to pass-through; `run` is the
  1 Hz tick that drives the quiet period and the command-mode timeout.
  Outputs are given as an `XBeePorts` object. `convert_char` turns one ASCII
  hex digit into its value.
- `sysref.imu` — the `Imu` component for an MPU-6050 on an I2C bus.
  `power_switch` powers the device on or off (configuring its gyroscope and
  accelerometer ranges at power-on), and each `run` reads and reports
  accelerometer and gyroscope vectors while powered. Outputs are given as an
  `ImuPorts` object; `deserialize_vector` turns six big-endian bytes into a
  scaled vector.
- `sysref.camera` — the `Camera` component. `take_action` reads a `Frame`
  from a capture source and either saves the raw image (`CameraAction.SAVE`)
  or sends it on as `RawImageData` (`CameraAction.PROCESS`); `config_img`
  sets the resolution (`ImgResolution`). Outputs are given as a
  `CameraPorts` object.
- `sysref.image_processor` — the `ImageProcessor` component, which encodes
  incoming raw images as PNG or JPEG (`FileFormat`, `encode_image`) using
  Pillow; `set_format` chooses the format, PNG by default.

## Install

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Using it

Components do not own any hardware. Each takes a ports object whose
callables it invokes for driver I/O, buffer allocation, events, telemetry
and command responses, so the same component can be wired to a real
driver or to a test double. Outputs left as `None` are unconnected: event
and telemetry outputs are then skipped, while an output the component
cannot do without raises `PortNotConnectedError` (from `sysref.xbee`).

```python
from sysref.config import TopologyState, ping_entry
from sysref.fw import Buffer, decode_bool, encode_bool
from sysref.xbee import ComSendStatus, SendStatus, XBee, XBeePorts

state = TopologyState("localhost", 50000)
thresholds = ping_entry("blockDrv")          # PingEntry(warn=3, fatal=5)
assert decode_bool(encode_bool(True)) is True

sent, statuses = [], []

def to_driver(buffer):
    sent.append(bytes(buffer))
    return SendStatus.SEND_OK

radio = XBee("radio", XBeePorts(drv_data_out=to_driver, com_status=statuses.append))
radio.com_data_in(Buffer(b"hello"))
assert sent == [b"hello"] and statuses == [ComSendStatus.READY]
```

Encoding a raw image directly (pixel format `16` is three 8-bit channels,
stored blue-green-red):

```python
from sysref.camera import RawImageData
from sysref.fw import Buffer
from sysref.image_processor import FileFormat, encode_image

raw = RawImageData(Buffer(bytes(2 * 2 * 3)), height=2, width=2, pixel_format=16)
png = encode_image(raw, FileFormat.PNG)
assert png[1:4] == b"PNG"
```

A `Camera` built without a capture source still completes its commands and
counts photos, but produces no image data. To capture, pass an object with
`is_opened()`, `open(device_index)`, `read()` returning a `Frame` (or
`None`) and `set(prop, value)`.

## What it does not do

The package holds the components only. It has no command to start a
system, does not assemble components into a running topology or schedule
their rate groups, and ships no drivers: serial, I2C and camera access all
come from the ports and capture source you provide.