[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hiraevt"
version = "2.0.0"
description = "Decoders for VME digitizer readout: CAEN TDC/ADC, Mesytec MADC32, SIS timestamps and event-builder fragments"
requires-python = ">=3.10"
dependencies = []
keywords = ["nuclear physics", "data acquisition", "unpacker", "VME", "CAEN", "MADC32", "event builder"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Physics",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["hiraevt"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
