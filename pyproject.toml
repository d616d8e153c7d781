[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dcsim"
version = "0.1.0"
description = "Packet-level discrete-event simulator for datacenter networks"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "simulation",
    "discrete-event",
    "datacenter",
    "networking",
    "fat-tree",
    "leaf-spine",
    "dctcp",
    "congestion-control",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
    "Topic :: Scientific/Engineering",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["dcsim"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
