#!/usr/bin/env python3
"""
Admin password hash generator

Usage:
    python scripts/generate_password.py

Prints an ADMIN_PASSWORD_HASH line for .env.local
"""

import getpass
import sys
from pathlib import Path

# Add parent directory to path to import portalar modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from portalar.services.auth import hash_password

MIN_PASSWORD_LENGTH = 8


def main():
    print("\nPortalAR admin password generator\n")

    password = getpass.getpass("Enter admin password: ")
    if len(password) < MIN_PASSWORD_LENGTH:
        print(f"Error: password must be at least {MIN_PASSWORD_LENGTH} characters long")
        sys.exit(1)
    if len(password.encode("utf-8")) > 72:
        print("Error: bcrypt only accepts passwords up to 72 bytes")
        sys.exit(1)

    if getpass.getpass("Repeat password: ") != password:
        print("Error: passwords do not match")
        sys.exit(1)

    print("\nAdd this to your .env.local file:")
    print("-" * 70)
    print(f"ADMIN_PASSWORD_HASH={hash_password(password)}")
    print("-" * 70)


if __name__ == "__main__":
    main()
