#!/usr/bin/env python3
"""
Print a fresh RSA key pair for JWT signing as environment variables.
Setting JWT_PRIVATE_KEY and JWT_PUBLIC_KEY keeps tokens valid across restarts.
"""

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.auth import generate_key_pair


def as_env_value(pem: str) -> str:
    """Escape newlines so the PEM fits on one .env line."""
    return pem.replace("\n", "\\n")


if __name__ == "__main__":
    private_key, public_key = generate_key_pair()

    print(f'JWT_PRIVATE_KEY="{as_env_value(private_key)}"')
    print(f'JWT_PUBLIC_KEY="{as_env_value(public_key)}"')
