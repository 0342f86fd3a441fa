[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tsql-engine"
version = "0.1.0"
description = "A small time series query language with an in-memory store and an HTTP API"
requires-python = ">=3.10"
dependencies = [
    "flask",
]
keywords = ["time series", "query language", "metrics", "aggregation", "database"]
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
    "Framework :: Flask",
    "Topic :: Database :: Database Engines/Servers",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
tsql-engine = "tsql_engine.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["tsql_engine"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
