[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "flightcore"
version = "0.1.0"
description = "Time-sliced task scheduler, small OS abstraction and queued UDP packet data link"
requires-python = ">=3.10"
dependencies = []
keywords = ["scheduler", "time-slicing", "udp", "embedded", "flight-software"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Embedded Systems",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
flightcore-server = "flightcore.maestro:main"

[tool.hatch.build.targets.wheel]
packages = ["flightcore"]

[tool.pytest.ini_options]
addopts = "-ra"
