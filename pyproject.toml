[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "groupfun"
version = "0.1.0"
description = "Group chat entertainment features: daily matchmaking, sign-in scores, sleep tracking, wordle, canned replies and galgame picture sets"
requires-python = ">=3.10"
keywords = ["chat", "bot", "group", "games", "wordle", "matchmaking"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Chat",
    "Topic :: Games/Entertainment",
]
dependencies = [
    "requests",
    "lxml",
    "pillow",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[tool.hatch.build.targets.wheel]
packages = ["groupfun"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
