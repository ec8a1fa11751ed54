[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sysref"
version = "0.1.0"
description = "Flight-software reference components: XBee radio link, IMU telemetry, camera capture and image encoding"
requires-python = ">=3.10"
keywords = [
    "flight software",
    "embedded",
    "xbee",
    "imu",
    "mpu6050",
    "i2c",
    "camera",
    "telemetry",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Embedded Systems",
    "Typing :: Typed",
]
dependencies = [
    "pillow",
]

[project.optional-dependencies]
test = [
    "pytest",
    "hypothesis",
]

[tool.hatch.build.targets.wheel]
packages = ["sysref"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
