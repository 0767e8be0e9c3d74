#!/usr/bin/env python3
"""
CLI entry point for elementkit.cli module.

This allows running: python -m elementkit.cli
"""

from .main import cli

if __name__ == "__main__":
    cli()
