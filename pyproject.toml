[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "schizobot"
version = "0.1.0"
description = "A Telegram group bot that remembers chat messages, stickers and images and answers with Markov-generated text."
requires-python = ">=3.10"
keywords = ["telegram", "bot", "markov", "chat"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Framework :: AsyncIO",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Chat",
]
dependencies = [
    "httpx",
    "sqlalchemy>=2.0",
    "python-dotenv",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
schizobot = "schizobot.bot:main"

[tool.hatch.build.targets.wheel]
packages = ["schizobot"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
