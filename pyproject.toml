[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tokenstunt"
version = "1.0.0"
description = "Symbol-level code search, dependency context and impact analysis over a SQLite code index"
requires-python = ">=3.10"
dependencies = []
keywords = ["code search", "bm25", "fts5", "semantic search", "symbols", "impact analysis"]
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
    "Topic :: Software Development",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["tokenstunt"]

[tool.pytest.ini_options]
addopts = "-ra"
