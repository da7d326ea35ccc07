"""
Read-only catalog of the 99 names, loaded once from JSON
"""

import json
import logging
import random
from dataclasses import dataclass
from pathlib import Path

from .core.database.models import TOTAL_NAMES
from .core.exceptions import InvalidInputError, NotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Name:
    """One entry of the catalog"""

    number: int
    arabic: str
    transliteration: str
    translation: str
    meaning: str = ""


class NameCatalog:
    """Lookup by number, at random, or all 99 names"""

    def __init__(self, names: list[Name]):
        numbers = sorted(name.number for name in names)
        if numbers != list(range(1, TOTAL_NAMES + 1)):
            raise InvalidInputError(
                f"Catalog must contain names numbered 1..{TOTAL_NAMES}, got {len(names)} entries"
            )
        self._names = sorted(names, key=lambda name: name.number)

    @classmethod
    def from_file(cls, path: str | Path) -> "NameCatalog":
        """Load the catalog from a ``{"names": [...]}`` JSON document"""
        with open(path, encoding="utf-8") as f:
            data = json.load(f)

        names = [
            Name(
                number=int(item["number"]),
                arabic=item["name"],
                transliteration=item["transliteration"],
                translation=item["translation"],
                meaning=item.get("meaning", ""),
            )
            for item in data.get("names", [])
        ]
        catalog = cls(names)
        logger.info(f"Loaded {len(names)} names from {path}")
        return catalog

    def by_number(self, number: int) -> Name:
        """Get the name with the given number"""
        if not isinstance(number, int) or number < 1 or number > len(self._names):
            raise NotFoundError(f"Name #{number} not found")
        return self._names[number - 1]

    def random(self) -> Name:
        """Get a random name"""
        return random.choice(self._names)

    def all(self) -> list[Name]:
        """Get all names in order"""
        return list(self._names)

    def __len__(self) -> int:
        return len(self._names)


# Global instance
_name_catalog = None


def get_name_catalog(path: str | Path | None = None) -> NameCatalog:
    """Get global catalog instance"""
    global _name_catalog
    if _name_catalog is None:
        if path is None:
            from .config import get_settings

            path = get_settings().names_file
        _name_catalog = NameCatalog.from_file(path)
    return _name_catalog
