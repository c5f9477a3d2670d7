[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "extinspect"
version = "0.1.0"
description = "Inspect and edit ext2/ext3/ext4 filesystem structures from a terminal"
requires-python = ">=3.10"
dependencies = []
keywords = ["ext2", "ext3", "ext4", "filesystem", "superblock", "inode", "hex editor", "curses"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console :: Curses",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Filesystems",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
extinspect = "extinspect.ui:main"

[tool.hatch.build.targets.wheel]
packages = ["extinspect"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
