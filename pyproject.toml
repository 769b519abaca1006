[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "anymon"
version = "0.1.0"
description = "File system change events: merging, generic netlink messages, block devices and event views"
requires-python = ">=3.10"
dependencies = []
keywords = ["vfs", "filesystem", "monitor", "netlink", "events", "mountinfo", "lsblk"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
    "Topic :: System :: Filesystems",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["anymon"]

[tool.pytest.ini_options]
addopts = "-ra"
