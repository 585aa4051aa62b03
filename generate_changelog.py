#!/usr/bin/env python3
"""
Changelog generator entry point.

This script merges new conventional commits from a git repository into
its CHANGELOG.md, assigning a semantic version to each new section.
"""

import sys

from changelogpy.cli import main

if __name__ == "__main__":
    sys.exit(main())
