[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pointcast"
version = "2.1.1"
description = "Channel point reward effects served to a browser-source overlay over WebSocket and HTTP"
requires-python = ">=3.10"
dependencies = [
    "aiohttp",
]
keywords = ["overlay", "obs", "channel-points", "rewards", "websocket", "streaming"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: End Users/Desktop",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Framework :: aiohttp",
    "Topic :: Multimedia :: Video :: Display",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["pointcast"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
