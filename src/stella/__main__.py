"""Entry point for running the client as module: python -m stella"""

# Load .env file before importing anything else
from dotenv import load_dotenv
load_dotenv()

from stella.runner import main

if __name__ == "__main__":
    raise SystemExit(main())
