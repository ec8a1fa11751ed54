"""Image processing payload: encodes raw camera frames into PNG or JPEG files."""

from __future__ import annotations

import io
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Optional

from PIL import Image

from sysref.camera import RawImageData
from sysref.fw import Buffer, CmdResponse
from sysref.xbee import PortNotConnectedError

# Pixel formats follow the matrix type codes of the capture library:
# the low three bits hold the element depth, the bits above the channel count less one.
_DEPTH_BITS = 3
_DEPTH_MASK = (1 << _DEPTH_BITS) - 1
_DEPTH_8U = 0
_DEPTH_8S = 1
_BYTE_DEPTHS = (_DEPTH_8U, _DEPTH_8S)


class FileFormat(IntEnum):
    """Encoded file format to convert raw images to."""

    JPG = 0
    PNG = 1

    @property
    def extension(self) -> str:
        return _EXTENSIONS[self]


_EXTENSIONS = {FileFormat.JPG: ".jpg", FileFormat.PNG: ".png"}
_PIL_FORMATS = {FileFormat.JPG: "JPEG", FileFormat.PNG: "PNG"}


def _channels(pixel_format: int) -> int:
    return (pixel_format >> _DEPTH_BITS) + 1


def encode_image(image_data: RawImageData, file_format: FileFormat | int) -> bytes:
    """Encode a raw image to ``file_format`` and return the file's bytes.

    Pixels are 8-bit and stored row by row; colour images are in blue-green-red
    order. Bytes missing from a short buffer read as zero.
    """
    fmt = FileFormat(file_format)
    height, width, pixel_format = image_data.height, image_data.width, image_data.pixel_format
    if height <= 0 or width <= 0:
        raise ValueError(f"image has no pixels: {width}x{height}")
    depth = pixel_format & _DEPTH_MASK
    channels = _channels(pixel_format)
    if depth not in _BYTE_DEPTHS:
        raise ValueError(f"unsupported pixel depth in format {pixel_format}")
    needed = height * width * channels
    raw = bytes(image_data.img_data.data[:needed]).ljust(needed, b"\0")
    size = (width, height)
    if channels == 1:
        image = Image.frombytes("L", size, raw)
    elif channels == 3:
        image = Image.frombytes("RGB", size, raw, "raw", "BGR")
    elif channels == 4:
        image = Image.frombytes("RGBA", size, raw, "raw", "BGRA")
        if fmt == FileFormat.JPG:
            image = image.convert("RGB")
    else:
        raise ValueError(f"unsupported channel count {channels} in format {pixel_format}")
    out = io.BytesIO()
    image.save(out, format=_PIL_FORMATS[fmt])
    return out.getvalue()


@dataclass
class ImageProcessorPorts:
    """Outputs of the image processor; unset outputs are unconnected."""

    buffer_allocate: Optional[Callable[[int], Buffer]] = None
    buffer_deallocate: Optional[Callable[[Buffer], None]] = None
    post_process: Optional[Callable[[Buffer], None]] = None
    cmd_response: Optional[Callable[[int, int, CmdResponse], None]] = None
    set_file_format: Optional[Callable[[FileFormat], None]] = None
    no_img_data: Optional[Callable[[], None]] = None
    bad_buffer_size: Optional[Callable[[int, int], None]] = None


class ImageProcessor:
    """Component converting raw images to an encoded file format."""

    BUFFER_SIZE = 10 * 1024 * 1024

    def __init__(self, name: str, ports: ImageProcessorPorts | None = None) -> None:
        self.name = name
        self.ports = ports if ports is not None else ImageProcessorPorts()
        self.file_format = FileFormat.PNG

    def _required(self, port: str) -> Callable:
        target = getattr(self.ports, port)
        if target is None:
            raise PortNotConnectedError(f"{self.name}: output {port!r} is not connected")
        return target

    @staticmethod
    def _emit(target: Optional[Callable], *args) -> None:
        if target is not None:
            target(*args)

    def image_data(self, image_data: RawImageData) -> None:
        """Encode an incoming raw image and send the result on; the raw buffer is released."""
        deallocate = self._required("buffer_deallocate")
        if image_data.height <= 0 or image_data.width <= 0:
            deallocate(image_data.img_data)
            self._emit(self.ports.no_img_data)
            return
        encoded = encode_image(image_data, self.file_format)
        out = self._required("buffer_allocate")(len(encoded))
        if len(out.data) == 0:
            self._emit(self.ports.bad_buffer_size, len(out.data), len(encoded))
            deallocate(image_data.img_data)
            return
        if len(out.data) < len(encoded):
            raise ValueError(
                f"allocated buffer of {len(out.data)} bytes cannot hold {len(encoded)}"
            )
        out.data[: len(encoded)] = encoded
        out.size = len(encoded)
        self._required("post_process")(out)
        deallocate(image_data.img_data)

    def set_format(self, opcode: int, cmd_seq: int, file_format: FileFormat | int) -> None:
        """Command: choose the file format images are encoded to."""
        fmt = FileFormat(file_format)
        self.file_format = fmt
        self._emit(self.ports.set_file_format, fmt)
        self._required("cmd_response")(opcode, cmd_seq, CmdResponse.OK)