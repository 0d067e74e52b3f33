[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cloudsweep"
version = "0.1.0"
description = "Find and delete stale cloud resources, filtered by age, region, tags and name rules."
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = ["cloud", "cleanup", "s3", "rds", "sqs", "opensearch", "transit-gateway", "secrets"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["cloudsweep"]

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
