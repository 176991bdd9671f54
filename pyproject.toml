[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "concurkit"
version = "0.1.0"
description = "Concurrency building blocks for Python threads: queues, a ring buffer, an MCS lock, QSBR, timers, a message bus, a tiny shell and a parallel word counter"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "concurrency",
    "queue",
    "ring-buffer",
    "mcs-lock",
    "qsbr",
    "timer",
    "message-bus",
    "map-reduce",
    "threads",
    "shell",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries",
    "Topic :: System :: Shells",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
concurkit-lfq = "concurkit.lfq:main"
concurkit-picosh = "concurkit.picosh:main"
concurkit-mbus = "concurkit.mbus:main"
concurkit-mpmc = "concurkit.mpmc:main"
concurkit-listmove = "concurkit.listmove:main"
concurkit-wordcount = "concurkit.wordcount:main"

[tool.hatch.build.targets.wheel]
packages = ["concurkit"]

[tool.hatch.build.targets.sdist]
include = ["concurkit", "tests", "pyproject.toml", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
