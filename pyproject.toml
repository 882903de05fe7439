[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ginx"
version = "0.1.0"
description = "A small event-driven HTTP reverse proxy with round-robin load balancing"
requires-python = ">=3.10"
keywords = ["proxy", "reverse-proxy", "http", "load-balancer", "round-robin", "epoll"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: No Input/Output (Daemon)",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Proxy Servers",
]
dependencies = [
    "pyyaml",
    "python-dotenv",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
ginx = "ginx.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["ginx"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
