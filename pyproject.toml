[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gitbuilder"
version = "0.1.0"
description = "Building blocks of a git-push build service: push locks, pre-receive hooks, builder pod specs, cleanup and health checks"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = [
    "git",
    "builder",
    "buildpack",
    "slug",
    "dockerfile",
    "paas",
    "pre-receive",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
    "Topic :: Software Development :: Version Control :: Git",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["gitbuilder"]

[tool.hatch.build.targets.sdist]
include = [
    "gitbuilder",
    "tests",
]

[tool.pytest.ini_options]
addopts = "-ra"
