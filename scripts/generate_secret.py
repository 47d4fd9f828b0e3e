#!/usr/bin/env python3
"""Generate an ADMIN_JWT_SECRET value"""

import secrets


def main():
    print("\nAdd this to your .env.local file:")
    print("-" * 70)
    print(f"ADMIN_JWT_SECRET={secrets.token_hex(32)}")
    print("-" * 70)
    print("Keep it out of version control.\n")


if __name__ == "__main__":
    main()
