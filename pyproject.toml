[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ndmtools"
version = "0.1.0"
description = "Block device hierarchy, mount lookup, GPT partitioning, claim selection and metrics helpers for node disk management"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "block device",
    "sysfs",
    "mounts",
    "gpt",
    "partition",
    "metrics",
    "prometheus",
    "feature gates",
    "custom resource definition",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Filesystems",
    "Topic :: System :: Systems Administration",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["ndmtools"]

[tool.pytest.ini_options]
addopts = "-ra"
