"""Tests for source archive locators."""

import pytest

from zipdeploy.exceptions import FormatError
from zipdeploy.locator import SourceLocator


class TestSourceLocatorParse:
    """Tests for SourceLocator.parse."""

    def test_parse_simple(self):
        locator = SourceLocator.parse("artifacts/site.zip")
        assert locator.bucket == "artifacts"
        assert locator.key == "site.zip"
        assert locator.version is None

    def test_parse_splits_on_first_separator_only(self):
        """Keys keep any further '/' characters."""
        locator = SourceLocator.parse("artifacts/releases/2024/site.zip")
        assert locator.bucket == "artifacts"
        assert locator.key == "releases/2024/site.zip"

    def test_parse_with_version(self):
        locator = SourceLocator.parse("artifacts/site.zip", version="abc123")
        assert locator.version == "abc123"

    def test_empty_version_means_latest(self):
        locator = SourceLocator.parse("artifacts/site.zip", version="")
        assert locator.version is None

    @pytest.mark.parametrize(
        "value",
        ["not-a-valid-locator", "", "/site.zip", "artifacts/", "/"],
    )
    def test_parse_rejects_malformed(self, value):
        with pytest.raises(FormatError, match="Invalid source format"):
            SourceLocator.parse(value)

    def test_constructor_rejects_empty_parts(self):
        with pytest.raises(FormatError):
            SourceLocator(bucket="", key="site.zip")
        with pytest.raises(FormatError):
            SourceLocator(bucket="artifacts", key="")


class TestSourceLocatorFormatting:
    """Tests for string forms of a locator."""

    def test_str_round_trips(self):
        value = "artifacts/releases/site.zip"
        assert str(SourceLocator.parse(value)) == value

    def test_describe_latest(self):
        assert SourceLocator.parse("a/b.zip").describe() == "a/b.zip (latest)"

    def test_describe_pinned(self):
        locator = SourceLocator.parse("a/b.zip", version="v7")
        assert locator.describe() == "a/b.zip (version v7)"

    def test_locators_are_hashable(self):
        first = SourceLocator.parse("a/b.zip")
        second = SourceLocator.parse("a/b.zip")
        assert first == second
        assert len({first, second}) == 1
