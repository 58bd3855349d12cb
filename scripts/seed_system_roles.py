#!/usr/bin/env python3
"""
Create the database tables and seed the system permissions and roles.

Safe to run repeatedly; existing rows are left untouched.

Usage:
    pip install -e .
    python scripts/seed_system_roles.py

Equivalent to the `orgauthz-seed` console script.
"""

from orgauthz.cli.main import seed


if __name__ == "__main__":
    seed()
