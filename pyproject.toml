[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hydrafs"
version = "0.1.0"
description = "FAT32 filesystem and MBR partition table access on in-memory block devices, with C-style string, formatting and allocator helpers"
requires-python = ">=3.10"
dependencies = []
keywords = ["fat32", "mbr", "filesystem", "partition", "block-device", "printf", "buddy-allocator"]
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
    "Topic :: System :: Filesystems",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["hydrafs"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
