[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "blocftp"
version = "0.1.0"
description = "A small block-oriented file transfer server and client with resumable downloads"
requires-python = ">=3.10"
keywords = ["file-transfer", "resume", "server", "client", "socket", "blocks"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Education",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: File Transfer Protocol (FTP)",
]
dependencies = []

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
blocftp-server = "blocftp.server:main"
blocftp-client = "blocftp.client:main"

[tool.hatch.build.targets.wheel]
packages = ["blocftp"]

[tool.pytest.ini_options]
addopts = "-ra"
