[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tome"
version = "0.1.0"
description = "Offline encyclopedia toolkit: module definitions, a BM25 full-text index, and parsers for wiki SQL dump files."
requires-python = ">=3.11"
keywords = ["wikipedia", "offline", "search", "bm25", "sql-dump", "modules"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Text Processing :: Indexing",
    "Topic :: Database",
]
dependencies = [
    "tomli-w",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["tome"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"
