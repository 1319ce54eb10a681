"""Tests for Cache-Control based refresh intervals."""

import httpx
import pytest
from remote_term.errors import CacheControlError
from remote_term.fetchers.http_cache import age, get_header, refresh_interval

COMMON = {
    "content-length": "0",
    "date": "Tue, 06 Feb 2024 11:05:02 GMT",
    "server": "Cowboy",
}


class TestRefreshInterval:
    """Test refresh_interval."""

    @pytest.mark.parametrize(
        "headers, expected",
        [
            # max-age minus age
            ({"cache-control": "max-age=10000, private, must-revalidate", "age": "1000"}, 9000),
            ({"cache-control": "max-age=10000, private, must-revalidate"}, 10000),
            # max-age in different parts of the list
            ({"cache-control": "max-age=50000, private, must-revalidate"}, 50000),
            ({"cache-control": "private, max-age=9990, must-revalidate"}, 9990),
            ({"cache-control": "private, must-revalidate, max-age=360000"}, 360000),
            # directive and header names are case-insensitive
            ({"cache-control": "MAX-aGe=89890"}, 89890),
            ({"Cache-Control": "max-age=60", "Age": "10"}, 50),
            # never negative
            ({"cache-control": "max-age=100, private, must-revalidate", "age": "1000"}, 0),
        ],
    )
    def test_interval(self, headers, expected):
        assert refresh_interval({**COMMON, **headers}) == expected

    def test_spec_example_seconds(self):
        """Test max-age=10000, private with age 1000 gives 9000 seconds."""
        assert refresh_interval({"cache-control": "max-age=10000, private", "age": "1000"}) == 9000

    def test_missing_cache_control(self):
        """Test a missing header is an explicit error."""
        with pytest.raises(CacheControlError, match="cache-control header not found"):
            refresh_interval({**COMMON, "age": "100"})

    def test_empty_cache_control(self):
        """Test an empty header counts as missing."""
        with pytest.raises(CacheControlError, match="cache-control header not found"):
            refresh_interval({"cache-control": ""})

    def test_missing_max_age(self):
        """Test a header without max-age is an explicit error."""
        with pytest.raises(CacheControlError, match="max-age not found in cache-control header"):
            refresh_interval({**COMMON, "cache-control": "private, must-revalidate", "age": "100"})

    def test_httpx_headers(self):
        """Test httpx.Headers are accepted."""
        headers = httpx.Headers({"Cache-Control": "public, max-age=600", "Age": "100"})
        assert refresh_interval(headers) == 500


class TestHeaders:
    """Test header helpers."""

    def test_non_numeric_age_defaults_to_zero(self):
        assert age({"age": "soon"}) == 0
        assert age({}) == 0

    def test_list_values_use_first(self):
        assert get_header({"cache-control": ["max-age=5", "private"]}, "Cache-Control") == "max-age=5"
        assert refresh_interval({"cache-control": ["max-age=5"], "age": ["1"]}) == 4
