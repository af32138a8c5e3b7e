"""
Word Deck: Vocabulary JSON Loader.

Loads review items from JSON deck files. A file holds either a list of words
or an object with an "items" list:

    [{"key": "hola", "meanings": ["hello", "hi"], "state": "learned"}, ...]

Words are de-duplicated by key across files; the first occurrence wins.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path

from loguru import logger

from src.review.models import ReviewItem


class WordDeck:
    """
    Manages a collection of vocabulary words.

    Features:
    - Loads a single file or every *.json file in a directory
    - Skips malformed entries with a warning
    - Preserves file order for presentation
    """

    DEFAULT_DECK_DIR = Path("decks")

    def __init__(self, path: Path | None = None):
        """
        Initialize the deck.

        Args:
            path: Deck file or directory of deck files (default: decks/)
        """
        self.path = path or self.DEFAULT_DECK_DIR

        self._items: dict[str, ReviewItem] = {}  # key -> item, insertion ordered
        self._files_loaded: list[Path] = []
        self._skipped: int = 0

    @property
    def total_items(self) -> int:
        return len(self._items)

    @property
    def files_loaded(self) -> list[Path]:
        return list(self._files_loaded)

    @property
    def skipped(self) -> int:
        return self._skipped

    def load(self) -> int:
        """
        Load words from the deck path.

        Returns:
            Number of words loaded
        """
        self._items.clear()
        self._files_loaded.clear()
        self._skipped = 0

        if self.path.is_file():
            json_files = [self.path]
        else:
            json_files = sorted(self.path.glob("*.json"))

        if not json_files:
            logger.warning(f"No deck files found in {self.path}")
            return 0

        for json_path in json_files:
            self._load_file(json_path)

        logger.info(
            f"WordDeck loaded: {self.total_items} words from {len(self._files_loaded)} files "
            f"({self._skipped} skipped)"
        )
        return self.total_items

    def _load_file(self, path: Path) -> int:
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load {path}: {e}")
            return 0

        rows = data.get("items", []) if isinstance(data, dict) else data
        if not isinstance(rows, list):
            logger.error(f"Unexpected deck layout in {path}")
            return 0

        count = 0
        for row in rows:
            try:
                item = ReviewItem.from_dict(row)
            except (ValueError, AttributeError, TypeError) as e:
                logger.warning(f"Skipping entry in {path.name}: {e}")
                self._skipped += 1
                continue

            if item.key in self._items:
                self._skipped += 1
                continue

            self._items[item.key] = item
            count += 1

        self._files_loaded.append(path)
        logger.debug(f"Loaded {count} words from {path.name}")
        return count

    def items(self) -> list[ReviewItem]:
        """All loaded words in deck order."""
        return list(self._items.values())

    def get(self, key: str) -> ReviewItem | None:
        return self._items.get(key)

    def __iter__(self) -> Iterator[ReviewItem]:
        return iter(self._items.values())

    def __len__(self) -> int:
        return len(self._items)
