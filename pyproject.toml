[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "starledger"
version = "0.1.0"
description = "Hash-chained block ledger with certified HTTP metadata, Ethereum addresses and an asset mapping registry"
requires-python = ">=3.10"
dependencies = [
    "pycryptodome",
]
keywords = [
    "ledger",
    "blockchain",
    "icrc3",
    "hash-chain",
    "erc1155",
    "asset-registry",
]
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
    "Topic :: Database",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["starledger"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
