"""Entry point for running webmail as a module.

Usage:
    python -m webmail validate-config
    python -m webmail threads batch.json
    python -m webmail --help
"""

from dotenv import load_dotenv

load_dotenv()  # Load .env before any other imports that need env vars

from webmail.cli import main  # noqa: E402

if __name__ == "__main__":
    main()
