[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "aserial"
version = "1.0.0"
description = "A framed, byte-stuffed serial packet protocol for controller and device roles, with COM-port helpers."
requires-python = ">=3.10"
dependencies = [
    "pyserial",
]
keywords = [
    "serial",
    "uart",
    "com-port",
    "packet",
    "protocol",
    "microcontroller",
    "arduino",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: Microsoft :: Windows",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Embedded Systems",
    "Topic :: Terminals :: Serial",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
aserial-echo = "aserial.echo:main"

[tool.hatch.build.targets.wheel]
packages = ["aserial"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
