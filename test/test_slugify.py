"""
Tests for slugify and data set name canonicalization
"""

import pytest

from datamanager.utils.slugify import canonicalize_data_set_name, slugify


class TestSlugifyBasic:
    """Test basic slugify functionality"""

    def test_slugify_simple_string(self):
        assert slugify("Hello World") == "hello-world"

    def test_slugify_lowercase_conversion(self):
        assert slugify("MiXeD CaSe") == "mixed-case"

    def test_slugify_replaces_special_characters(self):
        assert slugify("Price: $99.99") == "price-99-99"
        assert slugify("a_b.c") == "a-b-c"

    def test_slugify_collapses_and_trims_hyphens(self):
        assert slugify("--Too   Many---Hyphens--") == "too-many-hyphens"

    def test_slugify_transliterates_accents(self):
        assert slugify("Café Résumé") == "cafe-resume"

    def test_slugify_none(self):
        assert slugify(None) == ""


class TestCanonicalizeDataSetName:
    """Data set names must reduce to a non-empty URL-safe slug"""

    def test_canonical_name(self):
        assert canonicalize_data_set_name("Mobile App (iOS)") == "mobile-app-ios"

    def test_already_canonical_name_is_unchanged(self):
        assert canonicalize_data_set_name("shared-strings") == "shared-strings"

    @pytest.mark.parametrize("name", ["", "   ", None, "!!!", "---"])
    def test_rejects_names_without_letters_or_digits(self, name):
        with pytest.raises(ValueError):
            canonicalize_data_set_name(name)
