#!/usr/bin/env python3
"""
Setup script for ptimer CLI
"""

from setuptools import setup, find_packages
import os

# Read the README file
def read_readme():
    readme_path = os.path.join(os.path.dirname(__file__), 'README.md')
    if os.path.exists(readme_path):
        with open(readme_path, 'r', encoding='utf-8') as f:
            return f.read()
    return "ptimer CLI - Compile timer program descriptions into portable container files and extract them back"

setup(
    name="ptimer-cli",
    version="0.1.0",
    description="Compiler and decompiler for ptimer timer program containers",
    long_description=read_readme(),
    long_description_content_type="text/markdown",
    author="ptimer contributors",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "click>=8.0.0",
        "jsonschema>=4.0.0",
        "pyyaml>=6.0",
        "colorama>=0.4.0",
    ],
    extras_require={
        "dev": [
            # Testing framework
            "pytest>=6.0.0",
            "pytest-cov>=2.10.0",
            "pytest-mock>=3.0.0",
            "pytest-xdist>=2.0.0",  # Parallel test execution

            # Code quality
            "black>=21.0.0",
            "flake8>=3.8.0",
            "isort>=5.0.0",

            # Type checking
            "mypy>=0.800",
        ],
        "test": [
            "pytest>=6.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "ptimer=ptimer_cli.cli:main",
        ],
    },
    python_requires=">=3.8",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Utilities",
    ],
    keywords="timer, compiler, container, cli",
)
