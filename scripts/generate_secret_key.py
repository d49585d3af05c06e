"""
Generate a SECRET_KEY for signing access tokens.

Usage:
    python scripts/generate_secret_key.py [--length N] [--env-file PATH]

With --env-file the key is written into the file, replacing an existing
SECRET_KEY line.
"""

import argparse
import secrets
from pathlib import Path


def generate_secret_key(length: int = 64) -> str:
    return secrets.token_urlsafe(length)


def write_env_key(env_file: Path, key: str) -> None:
    lines = env_file.read_text().splitlines() if env_file.exists() else []
    lines = [line for line in lines if not line.startswith("SECRET_KEY=")]
    lines.append(f"SECRET_KEY={key}")
    env_file.write_text("\n".join(lines) + "\n")


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--length", type=int, default=64, help="random bytes before encoding")
    parser.add_argument("--env-file", type=Path, help="write SECRET_KEY into this .env file")
    args = parser.parse_args()

    key = generate_secret_key(args.length)
    if args.env_file:
        write_env_key(args.env_file, key)
        print(f"SECRET_KEY written to {args.env_file}")
    else:
        print(f"SECRET_KEY={key}")


if __name__ == "__main__":
    main()
