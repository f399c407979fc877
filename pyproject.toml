[build-system]
requires = ["setuptools>=64"]
build-backend = "setuptools.build_meta"

[project]
name = "thingscli"
version = "0.1.0"
description = "Command-line tool and library for searching, querying and editing a Things task list snapshot"
requires-python = ">=3.10"
dependencies = []
keywords = ["things", "todo", "tasks", "gtd", "cli", "productivity"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Scheduling",
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
thingscli = "thingscli.cli:main"

[tool.setuptools.packages.find]
include = ["thingscli*"]

[tool.pytest.ini_options]
addopts = "-ra"
