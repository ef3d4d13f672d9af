"""Code-side schema extraction.

Builds a ``SchemaAST`` from model definitions. Definitions are anything
with a ``describe()`` method returning a ``ModelDescription`` or an
``IndexDescription``; how they were loaded is not this module's concern
(see ``surql_sync.schema.loader``).

Nested definitions are flattened into the same path convention the DDL
parser produces for introspected schemas:

- ``address`` object with a ``city`` entry -> ``address.city``
- ``tags`` array with a string element     -> ``tags[*]``

Usage:
    from surql_sync.schema.extractor import extract_schema_from_definables
    from surql_sync.schema.loader import load_definables

    schema = extract_schema_from_definables(load_definables("models"))
"""

import logging
from collections.abc import Iterable
from typing import Protocol

from surql_sync.orm import FieldDescription, IndexDescription, ModelDescription
from surql_sync.schema.models import FieldAST, IndexAST, SchemaAST, TableAST, TableType

logger = logging.getLogger(__name__)


class Describable(Protocol):
    """Anything that can report its own schema metadata."""

    def describe(self) -> ModelDescription | IndexDescription: ...


def enumerate_fields(path: str, field: FieldDescription) -> list[FieldAST]:
    """Flatten a field and its nested definitions into path-named ``FieldAST``s.

    Example:
        >>> from surql_sync.orm import Field
        >>> [f.name for f in enumerate_fields("tags", Field.array(Field.string()).describe())]
        ['tags', 'tags[*]']
    """
    result = [
        FieldAST(
            name=path,
            type=field.type,
            flex=field.flexible,
            default=field.default,
            value=field.value,
            assert_=field.assert_,
            readonly=field.readonly,
            comment=field.comment,
            permissions=field.permissions,
        )
    ]
    if field.element is not None:
        result.extend(enumerate_fields(f"{path}[*]", field.element))
    for name, sub in field.fields.items():
        result.extend(enumerate_fields(f"{path}.{name}", sub))
    return result


def model_to_table(model: ModelDescription) -> TableAST:
    """Convert a model description to a ``TableAST`` without indexes."""
    fields: list[FieldAST] = []
    for name, field in model.fields.items():
        for flat in enumerate_fields(name, field):
            # Object wildcards have no counterpart in generated code
            if flat.name.endswith(".*"):
                continue
            fields.append(flat)

    return TableAST(
        name=model.name,
        type=TableType.VIEW if model.view else TableType(model.type.upper()),
        drop=model.drop,
        schemafull=model.schemafull,
        view_query=model.view,
        permissions=model.permissions,
        comment=model.comment,
        fields=fields,
    )


def index_to_ast(index: IndexDescription) -> IndexAST:
    return IndexAST(
        name=index.name,
        columns=list(index.columns),
        unique=index.unique,
        search=index.analyzer is not None,
        analyzer=index.analyzer,
        comment=index.comment,
    )


def extract_schema_from_definables(definables: Iterable[Describable]) -> SchemaAST:
    """Build a ``SchemaAST`` from model and index definitions.

    Tables keep the order in which their models first appear. The same
    model or index seen twice (e.g. imported into another module) is
    counted once. Indexes whose table has no model are logged and dropped.

    Args:
        definables: Model classes and index instances.

    Returns:
        ``SchemaAST`` with one table per distinct model.
    """
    tables: dict[str, TableAST] = {}
    indexes: list[IndexDescription] = []

    for definable in definables:
        description = definable.describe()
        if isinstance(description, ModelDescription):
            if description.name not in tables:
                tables[description.name] = model_to_table(description)
        elif isinstance(description, IndexDescription):
            indexes.append(description)

    for index in indexes:
        table = tables.get(index.table)
        if table is None:
            logger.warning(f"Index '{index.name}' references unknown table '{index.table}', skipping")
            continue
        if table.get_index(index.name) is None:
            table.indexes.append(index_to_ast(index))

    return SchemaAST(tables=list(tables.values()))
