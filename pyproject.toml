[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "blackboard"
version = "0.1.0"
description = "Shared blackboard backend: a TLS message server for canvas commands and audio chunks, with a load-testing client"
requires-python = ">=3.10"
dependencies = [
    "cryptography",
]
keywords = ["blackboard", "canvas", "audio", "tls", "asyncio", "protobuf", "stress-test"]
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
    "Typing :: Typed",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
blackboard-server = "blackboard.server:main"
blackboard-client = "blackboard.client:main"

[tool.hatch.build.targets.wheel]
packages = ["blackboard"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
