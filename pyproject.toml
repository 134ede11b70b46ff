[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "servercontroller"
version = "0.1.0"
description = "Dashboard controller for projects, applications and entrypoints, served as JSON over HTTP, with SQL schema migrations."
requires-python = ">=3.10"
keywords = ["dashboard", "controller", "projects", "applications", "migrations", "wsgi", "cors"]
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
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
    "Topic :: Database",
]
dependencies = [
    "sqlalchemy>=2.0",
    "pyyaml>=6.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
]

[project.scripts]
servercontroller = "servercontroller.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["servercontroller"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
