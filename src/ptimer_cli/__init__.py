#!/usr/bin/env python3
"""
ptimer CLI Package

This package compiles timer program descriptions into single-file
containers and extracts containers back into editable descriptions.
"""

__version__ = "0.1.0"
__author__ = "ptimer contributors"
__description__ = "Compiler and decompiler for ptimer timer program containers"

from .cli import cli, main

__all__ = ["cli", "main"]
