[build-system]
requires = ["setuptools>=61"]
build-backend = "setuptools.build_meta"

[project]
name = "tncbridge"
version = "0.1.9"
description = "Attach KISS TNC devices as Linux network interfaces"
requires-python = ">=3.10"
dependencies = []
keywords = ["kiss", "tnc", "ham radio", "amateur radio", "tap", "tun", "packet radio"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Ham Radio",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
tncbridge = "tncbridge.cli:main"

[tool.setuptools.packages.find]
include = ["tncbridge*"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
