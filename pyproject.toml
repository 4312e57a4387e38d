[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "templated"
version = "0.0.0"
description = "A static-asset HTTP server platform with layered settings, logging setup and a command-line front end"
requires-python = ">=3.11"
keywords = ["application", "cli", "server", "wasm", "static-files", "aiohttp"]
classifiers = [
    "Development Status :: 2 - Pre-Alpha",
    "Environment :: Console",
    "Environment :: Web Environment",
    "Framework :: AsyncIO",
    "Framework :: aiohttp",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]
dependencies = [
    "aiohttp>=3.9",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
    "pytest-asyncio>=0.23",
]

[project.scripts]
templated = "templated.cli:main"
templated-sand = "templated.workforce:main"

[tool.hatch.build.targets.wheel]
packages = ["templated"]

[tool.hatch.build.targets.sdist]
include = ["templated", "tests", "README.md", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
warn_redundant_casts = true
