[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "keyfobdecode"
version = "0.1.0"
description = "Pulse-level decoders for Subaru, Suzuki and VW key fob transmissions, with capture history and radio state handling"
requires-python = ">=3.10"
dependencies = []
keywords = ["sub-ghz", "key fob", "decoder", "radio", "manchester", "rolling code"]
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
    "Topic :: Communications :: Ham Radio",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["keyfobdecode"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
