#!/usr/bin/env python3
"""
ptimer CLI

This script provides a convenient way to run the ptimer CLI
without installing the package.
"""

import sys
import os

# Add the src directory to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "src")))

from ptimer_cli.cli import main

if __name__ == "__main__":
    main()
