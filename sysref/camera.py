"""Camera payload: captures frames and hands them on to be saved or processed."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Callable, Optional, Protocol

from sysref.fw import Buffer, CmdResponse
from sysref.xbee import PortNotConnectedError

CAP_PROP_FRAME_WIDTH = 3
CAP_PROP_FRAME_HEIGHT = 4


class CameraAction(IntEnum):
    """What to do with a captured frame."""

    PROCESS = 0
    SAVE = 1


class ImgResolution(IntEnum):
    """Capture resolutions the camera can be configured to."""

    SIZE_640x480 = 0
    SIZE_800x600 = 1


_RESOLUTIONS = {
    ImgResolution.SIZE_640x480: (640, 480),
    ImgResolution.SIZE_800x600: (800, 600),
}


@dataclass
class Frame:
    """A captured image: ``rows`` x ``cols`` pixels of ``elem_size`` bytes each."""

    rows: int
    cols: int
    elem_size: int
    pixel_format: int
    data: bytes = b""

    @property
    def empty(self) -> bool:
        return self.rows == 0 or self.cols == 0 or self.elem_size == 0

    @property
    def size(self) -> int:
        return self.rows * self.cols * self.elem_size


@dataclass
class RawImageData:
    """An uncompressed image and its geometry, handed on for processing."""

    img_data: Buffer = field(default_factory=Buffer)
    height: int = 0
    width: int = 0
    pixel_format: int = 0


class VideoCapture(Protocol):
    """A source of frames."""

    def is_opened(self) -> bool: ...

    def open(self, device_index: int) -> None: ...

    def read(self) -> Optional[Frame]: ...

    def set(self, prop: int, value: float) -> bool: ...


@dataclass
class CameraPorts:
    """Outputs of the camera component; unset outputs are unconnected."""

    allocate: Optional[Callable[[int], Buffer]] = None
    deallocate: Optional[Callable[[Buffer], None]] = None
    process: Optional[Callable[[RawImageData], None]] = None
    save: Optional[Callable[[Buffer], None]] = None
    cmd_response: Optional[Callable[[int, int, CmdResponse], None]] = None
    photos_taken: Optional[Callable[[int], None]] = None
    camera_already_open: Optional[Callable[[], None]] = None
    camera_open_error: Optional[Callable[[], None]] = None
    blank_frame: Optional[Callable[[], None]] = None
    invalid_buffer_size_error: Optional[Callable[[int, int], None]] = None
    camera_process: Optional[Callable[[], None]] = None
    camera_save: Optional[Callable[[], None]] = None
    img_config_set_fail: Optional[Callable[[ImgResolution], None]] = None
    set_img_config: Optional[Callable[[ImgResolution], None]] = None


class Camera:
    """Component taking photos from a capture device.

    Without a capture device the commands still complete and count photos,
    but no image data is produced.
    """

    def __init__(
        self,
        name: str,
        ports: CameraPorts | None = None,
        capture: VideoCapture | None = None,
    ) -> None:
        self.name = name
        self.ports = ports if ports is not None else CameraPorts()
        self.capture = capture
        self._photo_count = 0

    @property
    def photo_count(self) -> int:
        return self._photo_count

    def _required(self, port: str) -> Callable:
        target = getattr(self.ports, port)
        if target is None:
            raise PortNotConnectedError(f"{self.name}: output {port!r} is not connected")
        return target

    @staticmethod
    def _emit(target: Optional[Callable], *args) -> None:
        if target is not None:
            target(*args)

    def open(self, device_index: int = 0) -> bool:
        """Start the capture device; True when it is open afterwards."""
        if self.capture is None:
            return True
        if self.capture.is_opened():
            self._emit(self.ports.camera_already_open)
            return True
        self.capture.open(device_index)
        if not self.capture.is_opened():
            self._emit(self.ports.camera_open_error)
            return False
        return True

    def take_action(self, opcode: int, cmd_seq: int, camera_action: CameraAction | int) -> None:
        """Command: take a photo and save it or send it for processing."""
        action = CameraAction(camera_action)
        if self.capture is not None:
            frame = self.capture.read()
            if frame is None or frame.empty:
                self._emit(self.ports.blank_frame)
                return
            img_size = frame.size
            buffer = self._required("allocate")(img_size)
            if len(buffer.data) < img_size:
                self._emit(self.ports.invalid_buffer_size_error, len(buffer.data), img_size)
                self._required("deallocate")(buffer)
                return
            if len(frame.data) != img_size:
                raise ValueError(
                    f"frame holds {len(frame.data)} bytes, geometry needs {img_size}"
                )
            buffer.data[:img_size] = frame.data
            buffer.size = img_size
            if action == CameraAction.PROCESS:
                raw = RawImageData(buffer, frame.rows, frame.cols, frame.pixel_format)
                self._emit(self.ports.camera_process)
                self._required("process")(raw)
            else:
                self._required("save")(buffer)
                self._emit(self.ports.camera_save)
        self._photo_count += 1
        self._emit(self.ports.photos_taken, self._photo_count)
        self._required("cmd_response")(opcode, cmd_seq, CmdResponse.OK)

    def config_img(self, opcode: int, cmd_seq: int, resolution: ImgResolution | int) -> None:
        """Command: set the capture resolution."""
        resolution = ImgResolution(resolution)
        if self.capture is not None:
            width, height = _RESOLUTIONS[resolution]
            width_ok = self.capture.set(CAP_PROP_FRAME_WIDTH, width)
            height_ok = self.capture.set(CAP_PROP_FRAME_HEIGHT, height)
            if not width_ok or not height_ok:
                self._emit(self.ports.img_config_set_fail, resolution)
                return
        self._emit(self.ports.set_img_config, resolution)
        self._required("cmd_response")(opcode, cmd_seq, CmdResponse.OK)