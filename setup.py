#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
BreakBench: simulation and assembly benchmarking for SV/indel callers

Simulates sequencing reads over a mutated genomic interval with known
breakpoints and indels, and scores local assembly accuracy across coverage
and error-rate sweeps.

Version: 0.1
License: Dual Academic/Commercial (see LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md)
"""

from setuptools import setup, find_packages
import os
import sys

# Ensure we can import version
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "breakbench"))

from version import __version__

# Read long description from README
with open("README.md", "r", encoding="utf-8") as f:
    long_description = f.read()

# Read requirements from requirements.txt
def read_requirements(filename):
    """Read requirements from file."""
    filepath = os.path.join(os.path.dirname(__file__), filename)
    if not os.path.exists(filepath):
        return []
    with open(filepath, "r") as f:
        return [line.strip() for line in f if line.strip() and not line.startswith("#")]

# Basic requirements (always installed)
install_requires = read_requirements("requirements.txt")

# Optional dependencies
extras_require = {
    "dev": read_requirements("requirements-dev.txt"),
}

extras_require["test"] = extras_require["dev"]
extras_require["all"] = extras_require.get("dev", [])

setup(
    name="breakbench",
    version=__version__,
    author="BreakBench Development Team",
    description="Read simulation and local assembly benchmarking with ground-truth breakpoints",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Bio-Informatics",
        "License :: Other/Proprietary License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.9",
    install_requires=install_requires,
    extras_require=extras_require,
    entry_points={
        "console_scripts": [
            "breakbench=breakbench.cli:main",
        ],
    },
    include_package_data=True,
    zip_safe=False,
    keywords="bioinformatics simulation structural-variants indels assembly benchmark",
)
