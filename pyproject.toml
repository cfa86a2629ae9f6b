[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "claudeops"
version = "0.2.3"
description = "Claude Code usage helpers: configuration, live-session hooks, usage insights and OTLP metric export"
requires-python = ">=3.11"
keywords = ["claude", "usage", "telemetry", "otlp", "opentelemetry", "hooks", "monitoring"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]
dependencies = [
    "tomli-w",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
claudeops = "claudeops.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["claudeops"]

[tool.pytest.ini_options]
addopts = "-ra"
