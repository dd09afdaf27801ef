# File: armcnv/setup.py
# Location: armcnv/armcnv/setup.py
"""
Setup script for armcnv.

This file configures how the package is built, installed, and what
dependencies are required.
"""

import os
from setuptools import setup, find_packages

# Load version from version.py without importing the module
version = {}
with open(os.path.join("armcnv", "version.py")) as f:
    exec(f.read(), version)

# Read the README for the long description
this_dir = os.path.abspath(os.path.dirname(__file__))
with open(os.path.join(this_dir, "README.md"), encoding="utf-8") as f:
    long_description = f.read()

setup(
    name="armcnv",
    version=version["__version__"],
    description="A resumable tumor/normal copy-number pipeline with arm-aware segmentation.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "pandas",
        "numpy",
        "jinja2",
        "psutil",
        "smart_open",
    ],
    extras_require={"test": ["pytest"]},
    entry_points={"console_scripts": ["armcnv=armcnv.cli:main"]},
    include_package_data=True,
    package_data={"armcnv": ["config.json", "templates/*.j2"]},
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
    ],
)
