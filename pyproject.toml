[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "p2pvault"
version = "0.1.0"
description = "Peer-to-peer, content-addressed file storage over TCP with AES-CTR encrypted replication"
requires-python = ">=3.10"
keywords = ["p2p", "file-storage", "content-addressable", "tcp", "encryption"]
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
    "Topic :: Communications :: File Sharing",
    "Topic :: System :: Distributed Computing",
]
dependencies = [
    "cryptography",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
p2pvault = "p2pvault.main:main"

[tool.hatch.build.targets.wheel]
packages = ["p2pvault"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"
