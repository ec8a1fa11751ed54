"""Flight-software components: XBee radio link, IMU, camera and image encoding, with shared framework types and configuration."""

__version__ = "0.1.0"

__all__ = ["camera", "config", "fw", "image_processor", "imu", "xbee"]