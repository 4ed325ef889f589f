[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "k8e"
version = "0.1.0"
description = "Configuration, etcd settings, bootstrap encryption and manifest helpers for a lightweight Kubernetes distribution"
requires-python = ">=3.10"
keywords = ["kubernetes", "cluster", "etcd", "configuration", "manifests"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Clustering",
]
dependencies = [
    "pyyaml",
    "cryptography",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["k8e"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
