"""
Tests for the name catalog
"""

import json
from pathlib import Path

import pytest

from names_bot.core.exceptions import InvalidInputError, NotFoundError
from names_bot.name_catalog import Name, NameCatalog

NAMES_FILE = Path(__file__).resolve().parent.parent / "data" / "names.json"


class TestNameCatalog:
    """Test loading and lookups against the bundled data"""

    @pytest.fixture(scope="class")
    def catalog(self):
        return NameCatalog.from_file(NAMES_FILE)

    def test_loads_all_names(self, catalog):
        assert len(catalog) == 99
        assert [name.number for name in catalog.all()] == list(range(1, 100))

    def test_entries_are_complete(self, catalog):
        for name in catalog.all():
            assert name.arabic
            assert name.transliteration
            assert name.translation

    def test_options_are_distinguishable(self, catalog):
        names = catalog.all()
        assert len({name.translation for name in names}) == 99
        assert len({name.transliteration for name in names}) == 99

    def test_by_number(self, catalog):
        name = catalog.by_number(1)
        assert name.number == 1
        assert catalog.by_number(99).number == 99

    @pytest.mark.parametrize("number", [0, 100, -1])
    def test_unknown_number(self, catalog, number):
        with pytest.raises(NotFoundError):
            catalog.by_number(number)

    def test_random_is_from_catalog(self, catalog):
        for _ in range(20):
            assert catalog.random() in catalog.all()

    def test_all_returns_copy(self, catalog):
        names = catalog.all()
        names.clear()
        assert len(catalog.all()) == 99


class TestNameCatalogValidation:
    """Broken catalogs are rejected at load time"""

    def write_catalog(self, tmp_path, numbers):
        data = {
            "names": [
                {
                    "number": n,
                    "name": f"n{n}",
                    "transliteration": f"t{n}",
                    "translation": f"m{n}",
                }
                for n in numbers
            ]
        }
        path = tmp_path / "names.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    def test_missing_name(self, tmp_path):
        path = self.write_catalog(tmp_path, range(1, 99))
        with pytest.raises(InvalidInputError):
            NameCatalog.from_file(path)

    def test_duplicate_number(self, tmp_path):
        path = self.write_catalog(tmp_path, [1, *range(1, 99)])
        with pytest.raises(InvalidInputError):
            NameCatalog.from_file(path)

    def test_unordered_input_is_sorted(self, tmp_path):
        path = self.write_catalog(tmp_path, reversed(range(1, 100)))
        catalog = NameCatalog.from_file(path)
        assert catalog.by_number(5) == Name(5, "n5", "t5", "m5")
