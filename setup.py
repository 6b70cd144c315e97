#!/usr/bin/env python3
"""Setup script for the Prisma Language Server Integration package."""

import sys

from setuptools import find_packages, setup

# Read version from the package
with open("prismalsp/__init__.py") as f:
    for line in f:
        if line.startswith("__version__"):
            version = line.split("=")[1].strip().strip('"').strip("'")
            break
    else:
        version = "0.0.0"

# Read long description from README
with open("README.md") as f:
    long_description = f.read()

# Display warning about external dependencies
print("""
IMPORTANT: This package requires external dependencies that cannot be installed via pip:
- Node.js and npm, used to install and run @prisma/language-server

Please refer to the README.md for complete installation instructions.
""", file=sys.stderr)

setup(
    name="prismalsp",
    version=version,
    description="Installs and launches the Prisma language server for a language client",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Your Name",
    author_email="your.email@example.com",
    url="https://github.com/yourusername/prismalsp",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pygls>=1.1.0,<2.0",
        "lsprotocol>=2023.0.0",
        "pydantic>=2.0.0",
        "click>=8.1.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "prisma-lsp=prismalsp.cli:main",
            "prisma-lsp-service=prismalsp.service:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
    python_requires=">=3.10",
)
