"""Tests for unsupported-feature detection."""

from surql_sync.schema.warnings import FeatureWarning, WarningCollector


class TestCheckFeatureSupport:
    """Verify which definitions are skipped and which only warn."""

    def test_plain_definitions_pass(self):
        """Ordinary tables, fields and indexes pass without warnings."""
        collector = WarningCollector()
        assert collector.check_feature_support("table", "user", "DEFINE TABLE user SCHEMAFULL")
        assert collector.check_feature_support("field", "email", "DEFINE FIELD email ON user TYPE string")
        assert collector.check_feature_support("index", "idx", "DEFINE INDEX idx ON user FIELDS email UNIQUE")
        assert len(collector) == 0
        assert not collector

    def test_vector_index_skipped(self):
        """MTREE and HNSW indexes are unsupported."""
        collector = WarningCollector()
        assert not collector.check_feature_support("index", "v1", "DEFINE INDEX v1 ON doc FIELDS e MTREE DIMENSION 3")
        assert not collector.check_feature_support("index", "v2", "DEFINE INDEX v2 ON doc FIELDS e HNSW DIMENSION 3")
        assert len(collector) == 2

    def test_search_index_kept_with_warning(self):
        """Search indexes are kept but flagged."""
        collector = WarningCollector()
        assert collector.check_feature_support("index", "s", "DEFINE INDEX s ON post FIELDS body SEARCH ANALYZER ascii")
        assert collector.warnings[0].reason == "Search analyzer index detected"

    def test_inline_object_field_skipped(self):
        """Object fields with an inline schema are skipped."""
        collector = WarningCollector()
        assert not collector.check_feature_support("field", "meta", "DEFINE FIELD meta ON user TYPE object { a: string }")

    def test_uncommon_geometry_warns(self):
        """Uncommon geometry subtypes warn but are kept."""
        collector = WarningCollector()
        assert collector.check_feature_support("field", "area", "DEFINE FIELD area ON zone TYPE geometry<triangle>")
        assert collector.warnings[0].reason == "Uncommon geometry type: triangle"

        collector.clear()
        assert collector.check_feature_support("field", "loc", "DEFINE FIELD loc ON zone TYPE geometry<point>")
        assert len(collector) == 0

    def test_changefeed_warns(self):
        """Changefeed tables warn but are kept."""
        collector = WarningCollector()
        assert collector.check_feature_support("table", "log", "DEFINE TABLE log CHANGEFEED 1d")
        assert len(collector) == 1

    def test_unmodeled_kinds_skipped(self):
        """Events, analyzers, functions and params are always skipped."""
        collector = WarningCollector()
        for kind in ("event", "analyzer", "function", "param"):
            assert not collector.check_feature_support(kind, "x", "DEFINE ...")
        assert [w.feature for w in collector] == [
            "Event 'x'",
            "Analyzer 'x'",
            "Function 'x'",
            "Parameter 'x'",
        ]


class TestWarningCollector:
    """Verify collector lifecycle and report formatting."""

    def test_collectors_are_independent(self):
        """Warnings never leak between collectors."""
        first = WarningCollector()
        second = WarningCollector()
        first.add("Table 'a'", "reason")
        assert len(first) == 1
        assert len(second) == 0

    def test_warnings_returns_copy(self):
        """Mutating the returned list does not affect the collector."""
        collector = WarningCollector()
        collector.add("Table 'a'", "reason")
        collector.warnings.clear()
        assert len(collector) == 1
        assert collector.warnings == [FeatureWarning(feature="Table 'a'", reason="reason")]

    def test_format_empty(self):
        """Empty report."""
        assert WarningCollector().format_report() == "No warnings"

    def test_format_report(self):
        """Report lists each warning and its suggestion."""
        collector = WarningCollector()
        collector.add("Event 'audit'", "Events are not supported", "Manage manually")
        collector.add("Table 'log'", "Changefeed configuration detected")
        assert collector.format_report() == (
            "Warnings (2):\n"
            "  - Event 'audit': Events are not supported\n"
            "    Manage manually\n"
            "  - Table 'log': Changefeed configuration detected"
        )
