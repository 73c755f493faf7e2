[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "multichain"
version = "0.1.0"
description = "Address encoding, UTXO transaction building and gas estimation for Bitcoin, Bitcoin Cash and Cosmos"
requires-python = ">=3.10"
keywords = ["blockchain", "bitcoin", "bitcoin-cash", "cosmos", "utxo", "cashaddr", "bech32", "base58"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Office/Business :: Financial",
    "Topic :: Security :: Cryptography",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "pycryptodome",
]

[project.optional-dependencies]
test = [
    "pytest",
    "hypothesis",
]

[tool.hatch.build.targets.wheel]
packages = ["multichain"]

[tool.hatch.build.targets.sdist]
include = ["multichain", "tests"]

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
