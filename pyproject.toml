[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gotenberg"
version = "0.1.0"
description = "A module system, typed flags and process supervision core for a document conversion service."
requires-python = ">=3.10"
dependencies = [
    "regex",
]
keywords = [
    "modules",
    "plugins",
    "flags",
    "process-supervisor",
    "pdf",
    "garbage-collection",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
gotenberg = "gotenberg.app:main"

[tool.hatch.build.targets.wheel]
packages = ["gotenberg"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]
