"""Unit tests for match record flattening and DuckDB persistence."""
import json

from automatch.score.automatch import run_automatch, scan_deals
from automatch.score.persist import load_matches, matches_to_frame, persist_matches, scan_to_frame

YEAR = 2025


class TestFrames:
    """Test flattening of match lists."""

    def test_matches_to_frame(self, make_deal, make_cde):
        cdes = [
            make_cde(cde_id="a", organization_id="a", name="Alpha"),
            make_cde(cde_id="b", organization_id="b", name="Beta", remaining_allocation=0),
        ]
        df = matches_to_frame("deal-1", run_automatch(make_deal(), cdes, YEAR))
        assert df["rank"].tolist() == [1, 2]
        assert df["cde_id"].tolist() == ["a", "b"]
        assert df["tier"].tolist() == ["Excellent", "Excellent"]
        assert df["source"].unique().tolist() == ["local"]
        assert json.loads(df.loc[0, "breakdown"])["geographic"] == 1

    def test_empty_matches(self):
        df = matches_to_frame("deal-1", [])
        assert df.empty
        assert "reason_text" in df.columns

    def test_scan_to_frame(self, make_deal, make_cde):
        matches = scan_deals(make_cde(), [make_deal()], YEAR)
        df = scan_to_frame("cde-1", matches)
        assert df.loc[0, "deal_id"] == "deal-1"
        assert df.loc[0, "score"] == 100


class TestPersistMatches:
    """Test match records in DuckDB."""

    def test_persist_and_load(self, make_deal, make_cde, db_path):
        cdes = [
            make_cde(cde_id="a", organization_id="a", name="Alpha"),
            make_cde(cde_id="b", organization_id="b", name="Beta", remaining_allocation=0),
        ]
        persist_matches(matches_to_frame("deal-1", run_automatch(make_deal(), cdes, YEAR)), db_path)

        stored = load_matches("deal-1", db_path)
        assert stored["cde_id"].tolist() == ["a", "b"]
        assert stored["score"].tolist() == [100, 93]
        assert stored.loc[0, "allocation_year"] == 2024

    def test_rerun_replaces_records(self, make_deal, make_cde, db_path):
        """Test that re-running a deal replaces its previous match records."""
        first = [make_cde(cde_id=f"c{i}", organization_id=f"o{i}", name=f"CDE {i}") for i in range(3)]
        persist_matches(matches_to_frame("deal-1", run_automatch(make_deal(), first, YEAR)), db_path)
        persist_matches(matches_to_frame("deal-1", run_automatch(make_deal(), first[:1], YEAR)), db_path)

        assert len(load_matches("deal-1", db_path)) == 1

    def test_rerun_without_matches_clears_records(self, make_deal, make_cde, db_path):
        """Test that a rerun finding no matches removes the deal's old records."""
        cdes = [make_cde()]
        persist_matches(matches_to_frame("deal-1", run_automatch(make_deal(), cdes, YEAR)), db_path)
        assert len(load_matches("deal-1", db_path)) == 1

        empty = matches_to_frame("deal-1", run_automatch(make_deal(), cdes, YEAR, min_score=101))
        assert empty.empty
        persist_matches(empty, db_path, deal_ids=["deal-1"])

        assert load_matches("deal-1", db_path).empty

    def test_other_deals_untouched(self, make_deal, make_cde, db_path):
        cdes = [make_cde()]
        persist_matches(matches_to_frame("deal-1", run_automatch(make_deal(), cdes, YEAR)), db_path)
        persist_matches(matches_to_frame("deal-2", run_automatch(make_deal(deal_id="deal-2"), cdes, YEAR)), db_path)

        assert len(load_matches("deal-1", db_path)) == 1
        assert len(load_matches("deal-2", db_path)) == 1

    def test_load_without_table(self, db_path):
        assert load_matches("deal-1", db_path).empty
