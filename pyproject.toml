[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "registryctl"
version = "0.1.0"
description = "Validate, review and synchronise a file-based DNS subdomain registry with Cloudflare"
requires-python = ">=3.10"
dependencies = []
keywords = ["dns", "registry", "cloudflare", "subdomain", "validation"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Name Service (DNS)",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
baka-registry = "registryctl.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["registryctl"]

[tool.pytest.ini_options]
addopts = "-ra"
