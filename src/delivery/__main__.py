"""
Entry point for running Vocab Review as a module.

Usage:
    python -m src.delivery review
    python -m src.delivery stats
    python -m src.delivery --help
"""
from .review_cli import main

if __name__ == "__main__":
    main()
