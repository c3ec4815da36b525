[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "turnrelay"
version = "0.1.0"
description = "Asyncio building blocks for TURN relays: allocations, permissions, channel bindings, credentials and STUN transaction bookkeeping"
requires-python = ">=3.10"
dependencies = []
keywords = ["turn", "stun", "relay", "nat", "asyncio"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Framework :: AsyncIO",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest", "pytest-asyncio"]

[tool.hatch.build.targets.wheel]
packages = ["turnrelay"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
