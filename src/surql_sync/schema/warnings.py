"""Detection of database features that are not modeled by the schema AST.

Vector indexes, analyzers, functions, params and events are recognized but
not represented. Each occurrence is recorded as a ``FeatureWarning`` in a
``WarningCollector`` owned by the caller, so nothing accumulates globally.

Usage:
    from surql_sync.schema.warnings import WarningCollector

    warnings = WarningCollector()
    if warnings.check_feature_support("index", "idx_vec", ddl):
        ...  # parse and keep the index
    print(warnings.format_report())
"""

import re
from collections.abc import Iterator

from pydantic import BaseModel

_COMMON_GEOMETRY_TYPES = {
    "point",
    "linestring",
    "polygon",
    "multipoint",
    "multilinestring",
    "multipolygon",
    "collection",
    "feature",
}


class FeatureWarning(BaseModel):
    """An unsupported or partially supported feature found in a schema."""

    feature: str
    reason: str
    suggestion: str | None = None


class WarningCollector:
    """Accumulates ``FeatureWarning`` values for one extraction run.

    Example:
        >>> collector = WarningCollector()
        >>> collector.check_feature_support("event", "audit", "DEFINE EVENT audit ...")
        False
        >>> len(collector)
        1
    """

    def __init__(self) -> None:
        self._warnings: list[FeatureWarning] = []

    def add(self, feature: str, reason: str, suggestion: str | None = None) -> None:
        self._warnings.append(FeatureWarning(feature=feature, reason=reason, suggestion=suggestion))

    def clear(self) -> None:
        self._warnings.clear()

    @property
    def warnings(self) -> list[FeatureWarning]:
        return list(self._warnings)

    def __iter__(self) -> Iterator[FeatureWarning]:
        return iter(self._warnings)

    def __len__(self) -> int:
        return len(self._warnings)

    def __bool__(self) -> bool:
        return bool(self._warnings)

    def check_feature_support(self, kind: str, name: str, definition: str) -> bool:
        """Record warnings for unmodeled constructs in a definition.

        Args:
            kind: One of ``table``, ``field``, ``index``, ``event``,
                ``analyzer``, ``function`` or ``param``.
            name: Name of the definition, used in the warning text.
            definition: Raw DEFINE statement.

        Returns:
            False if the definition should be skipped entirely, True if it
            can be parsed (possibly with a warning recorded).
        """
        if kind == "field":
            if "TYPE object" in definition and "{" in definition:
                self.add(
                    f"Field '{name}'",
                    "Object field with inline schema definition",
                    "Object fields are generated as Field.object({}); define the nested fields manually",
                )
                return False

            match = re.search(r"geometry<(\w+)>", definition)
            if match and match.group(1).lower() not in _COMMON_GEOMETRY_TYPES:
                self.add(
                    f"Field '{name}'",
                    f"Uncommon geometry type: {match.group(1)}",
                    "Verify the generated Field.geometry() call is correct",
                )

        elif kind == "index":
            if "MTREE" in definition or "HNSW" in definition:
                self.add(
                    f"Index '{name}'",
                    "Vector index (MTREE/HNSW) detected",
                    "Vector indexes are skipped; manage them with hand-written migrations",
                )
                return False

            if "SEARCH ANALYZER" in definition or "FULLTEXT ANALYZER" in definition:
                self.add(
                    f"Index '{name}'",
                    "Search analyzer index detected",
                    "Search indexes are detected but never regenerated",
                )

        elif kind == "table":
            if "CHANGEFEED" in definition:
                self.add(
                    f"Table '{name}'",
                    "Changefeed configuration detected",
                    "Changefeeds are not carried into generated models",
                )

        elif kind == "event":
            self.add(
                f"Event '{name}'",
                "Events are not supported",
                "Event definitions must be managed manually",
            )
            return False

        elif kind == "analyzer":
            self.add(
                f"Analyzer '{name}'",
                "Analyzers are not supported",
                "Analyzer definitions will be skipped",
            )
            return False

        elif kind == "function":
            self.add(
                f"Function '{name}'",
                "Custom functions are not supported",
                "Function definitions will be skipped",
            )
            return False

        elif kind == "param":
            self.add(
                f"Parameter '{name}'",
                "Database parameters are not supported",
                "Parameter definitions will be skipped",
            )
            return False

        return True

    def format_report(self) -> str:
        """Format collected warnings as a human-readable report."""
        if not self._warnings:
            return "No warnings"

        lines = [f"Warnings ({len(self._warnings)}):"]
        for warning in self._warnings:
            lines.append(f"  - {warning.feature}: {warning.reason}")
            if warning.suggestion:
                lines.append(f"    {warning.suggestion}")
        return "\n".join(lines)
