"""Unit tests for text, coercion, header-matching and file helpers."""
import json

import pandas as pd
import pytest

from automatch.utils.coerce import to_bool, to_dict, to_float, to_int, to_list, to_optional_bool, to_text
from automatch.utils.fuzzy import find_header_match, map_headers
from automatch.utils.io import read_data_file, write_csv
from automatch.utils.text import contains_any, normalize_text


class TestNormalizeText:
    """Test free-text normalization."""

    def test_separators_and_case(self):
        assert normalize_text("Real_Estate") == "real estate"
        assert normalize_text("real-estate") == "real estate"
        assert normalize_text("  Operating   Business ") == "operating business"

    def test_missing(self):
        assert normalize_text(None) == ""
        assert normalize_text("") == ""
        assert normalize_text(float("nan")) == ""

    def test_contains_any(self):
        assert contains_any("indian country lending", ["tribal", "indian country"])
        assert not contains_any("urban core", ["rural"])


class TestCoerce:
    """Test export value coercion."""

    @pytest.mark.parametrize("value", [True, "true", "Yes", "Y", "1", 1, "x"])
    def test_truthy(self, value):
        assert to_bool(value) is True

    @pytest.mark.parametrize("value", [False, "false", "no", "0", 0, "maybe"])
    def test_falsy(self, value):
        assert to_bool(value) is False

    def test_bool_default_for_missing(self):
        assert to_bool(None, default=True) is True
        assert to_bool(float("nan"), default=True) is True
        assert to_bool("  ") is False
        assert to_optional_bool(None) is None
        assert to_optional_bool("yes") is True

    def test_float(self):
        assert to_float("$5,000,000") == 5_000_000.0
        assert to_float("45%") == 45.0
        assert to_float(12) == 12.0
        assert to_float("n/a") is None
        assert to_float(None) is None
        assert to_int("2,024") == 2024

    def test_list_variants(self):
        assert to_list(["CA", "NY"]) == ["CA", "NY"]
        assert to_list('["CA", "NY"]') == ["CA", "NY"]
        assert to_list("{CA,NY}") == ["CA", "NY"]
        assert to_list("CA; NY | TX") == ["CA", "NY", "TX"]
        assert to_list(None) == []
        assert to_list("") == []

    def test_dict(self):
        assert to_dict('{"a": 1}') == {"a": 1}
        assert to_dict({"a": 1}) == {"a": 1}
        assert to_dict("not json") == {}
        assert to_dict("[1, 2]") == {}
        assert to_dict(None) == {}

    def test_text(self):
        assert to_text({"a": 1}) == json.dumps({"a": 1})
        assert to_text(["CA"]) == '["CA"]'
        assert to_text(5) == "5"
        assert to_text(None) is None


class TestHeaderMatching:
    """Test fuzzy header mapping for export files."""

    def test_exact_match_after_normalization(self):
        mapping = map_headers({"min_deal_size": "min_deal_size"}, ["Min Deal Size", "Name"])
        assert mapping == {"min_deal_size": "Min Deal Size"}

    def test_fuzzy_match(self):
        mapping = map_headers({"organization_name": "organization_name"}, ["organisation_name"])
        assert mapping == {"organization_name": "organisation_name"}

    def test_unmatched_omitted(self):
        mapping = map_headers({"state": "state", "tribal": "native_american_focus"}, ["state", "zip"])
        assert mapping == {"state": "state"}

    def test_header_used_once(self):
        mapping = map_headers({"a": "state", "b": "state"}, ["state"])
        assert list(mapping.values()) == ["state"]

    def test_find_header_threshold(self):
        assert find_header_match("amount", ["amount_usd"], threshold=95) is None
        assert find_header_match("amount", []) is None


class TestFileIO:
    """Test export file reading and CSV output."""

    def test_read_csv(self, tmp_path):
        path = tmp_path / "cdes.csv"
        path.write_text("id,name\n1,Alpha\n2,Beta\n")
        df = read_data_file(path)
        assert len(df) == 2
        assert list(df.columns) == ["id", "name"]

    def test_read_json_records(self, tmp_path):
        path = tmp_path / "deals.json"
        path.write_text(json.dumps([{"id": "d1", "state": "CA"}, {"id": "d2", "state": "NY"}]))
        df = read_data_file(path)
        assert df["id"].tolist() == ["d1", "d2"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_data_file(tmp_path / "missing.csv")

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "cdes.txt"
        path.write_text("id\n1\n")
        with pytest.raises(ValueError):
            read_data_file(path)

    def test_write_csv_creates_dirs(self, tmp_path):
        out = tmp_path / "nested" / "out.csv"
        write_csv(pd.DataFrame({"a": [1, 2, 3]}), out, max_rows=2)
        assert out.exists()
        assert len(pd.read_csv(out)) == 2
