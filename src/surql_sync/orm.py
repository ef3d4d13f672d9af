"""Declarative model definitions for SurrealDB tables.

Models are plain Python modules that subclass ``Table`` and declare a
``fields`` mapping built from ``Field`` builders. Indexes are module-level
``Index`` instances bound to a model. Both expose ``describe()``, which is
the only interface the code extractor relies on.

Usage:
    from surql_sync.orm import Field, Index, Table

    class User(Table, table="user", schemafull=True):
        fields = {
            "email": Field.string(assert_="string::is::email($value)"),
            "tags": Field.array(Field.string(), max=10),
            "address": Field.option(Field.object({
                "city": Field.string(),
            })),
        }

    idx_email = Index(User, name="idx_email", fields=["email"], unique=True)

    USER_DEFINITIONS = [User, idx_email]
"""

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field as PydanticField

from surql_sync.schema.models import Permissions

PermissionsSpec = Permissions | dict[str, str] | str | None


def _to_permissions(spec: PermissionsSpec) -> Permissions:
    """Accept ``"FULL"``, a per-operation dict, or a ``Permissions`` value."""
    if spec is None:
        return Permissions()
    if isinstance(spec, Permissions):
        return spec
    if isinstance(spec, str):
        return Permissions.uniform(spec)
    return Permissions(**spec)


# ============================================================================
# Descriptions (the structural metadata returned by describe())
# ============================================================================


class FieldDescription(BaseModel):
    """Structural metadata for one field and its nested definitions."""

    model_config = ConfigDict(populate_by_name=True)

    type: str
    default: str | None = None
    value: str | None = None
    assert_: str | None = PydanticField(default=None, alias="assert")
    readonly: bool = False
    flexible: bool = False
    comment: str | None = None
    permissions: Permissions = PydanticField(default_factory=Permissions)
    element: "FieldDescription | None" = None
    fields: dict[str, "FieldDescription"] = PydanticField(default_factory=dict)


class ModelDescription(BaseModel):
    """Structural metadata for a ``Table`` subclass."""

    name: str
    type: str = "normal"
    schemafull: bool = True
    drop: bool = False
    view: str | None = None
    comment: str | None = None
    permissions: Permissions = PydanticField(default_factory=Permissions)
    fields: dict[str, FieldDescription] = PydanticField(default_factory=dict)


class IndexDescription(BaseModel):
    """Structural metadata for an ``Index`` definition."""

    name: str
    table: str
    columns: list[str] = PydanticField(default_factory=list)
    unique: bool = False
    analyzer: str | None = None
    comment: str | None = None


# ============================================================================
# Field builders
# ============================================================================


class FieldDefinition:
    """A field type plus its clause options, as produced by ``Field`` builders."""

    def __init__(
        self,
        type: str,
        *,
        default: str | None = None,
        value: str | None = None,
        assert_: str | None = None,
        readonly: bool = False,
        flexible: bool = False,
        comment: str | None = None,
        permissions: PermissionsSpec = None,
        element: "FieldDefinition | None" = None,
        fields: dict[str, "FieldDefinition"] | None = None,
    ):
        self.type = type
        self.default = default
        self.value = value
        self.assert_ = assert_
        self.readonly = readonly
        self.flexible = flexible
        self.comment = comment
        self.permissions = _to_permissions(permissions)
        self.element = element
        self.fields = fields or {}

    def describe(self) -> FieldDescription:
        return FieldDescription(
            type=self.type,
            default=self.default,
            value=self.value,
            assert_=self.assert_,
            readonly=self.readonly,
            flexible=self.flexible,
            comment=self.comment,
            permissions=self.permissions,
            element=self.element.describe() if self.element is not None else None,
            fields={name: field.describe() for name, field in self.fields.items()},
        )

    def __repr__(self) -> str:
        return f"FieldDefinition({self.type!r})"


def _scalar(type_name: str):
    def builder(**options: Any) -> FieldDefinition:
        return FieldDefinition(type_name, **options)

    builder.__name__ = type_name
    builder.__doc__ = f"``{type_name}`` field."
    return staticmethod(builder)


class Field:
    """Builders for field definitions.

    Every builder accepts the clause options ``default``, ``value``,
    ``assert_``, ``readonly``, ``flexible``, ``comment`` and ``permissions``.
    Expressions are raw SurrealQL strings.

    Example:
        >>> Field.option(Field.string()).type
        'option<string>'
        >>> Field.array(Field.record("user"), max=5).type
        'array<record<user>, 5>'
    """

    any = _scalar("any")
    string = _scalar("string")
    int = _scalar("int")
    float = _scalar("float")
    number = _scalar("number")
    bool = _scalar("bool")
    datetime = _scalar("datetime")
    duration = _scalar("duration")
    decimal = _scalar("decimal")
    uuid = _scalar("uuid")
    bytes = _scalar("bytes")

    @staticmethod
    def custom(type_expr: str, **options: Any) -> FieldDefinition:
        """Field with a raw type expression, e.g. ``"string | int"``."""
        return FieldDefinition(type_expr, **options)

    @staticmethod
    def geometry(kind: str = "feature", **options: Any) -> FieldDefinition:
        return FieldDefinition(f"geometry<{kind}>", **options)

    @staticmethod
    def record(table: "str | type[Table] | None" = None, **options: Any) -> FieldDefinition:
        """Record link. *table* may be a table name or a ``Table`` subclass."""
        if table is None:
            return FieldDefinition("record", **options)
        if isinstance(table, type) and issubclass(table, Table):
            table = table.table_name()
        return FieldDefinition(f"record<{table}>", **options)

    @staticmethod
    def option(inner: FieldDefinition, **options: Any) -> FieldDefinition:
        """Optional value. Nested definitions of *inner* stay reachable."""
        return FieldDefinition(
            f"option<{inner.type}>",
            element=inner.element,
            fields=inner.fields,
            **options,
        )

    @staticmethod
    def array(element: FieldDefinition, max: "int | None" = None, **options: Any) -> FieldDefinition:
        type_expr = f"array<{element.type}, {max}>" if max is not None else f"array<{element.type}>"
        return FieldDefinition(type_expr, element=element, **options)

    @staticmethod
    def set(element: FieldDefinition, max: "int | None" = None, **options: Any) -> FieldDefinition:
        type_expr = f"set<{element.type}, {max}>" if max is not None else f"set<{element.type}>"
        return FieldDefinition(type_expr, element=element, **options)

    @staticmethod
    def object(fields: dict[str, FieldDefinition] | None = None, **options: Any) -> FieldDefinition:
        return FieldDefinition("object", fields=fields, **options)


# ============================================================================
# Tables and indexes
# ============================================================================


class Table:
    """Base class for model definitions.

    Table options are class keywords::

        class Follows(Table, table="follows", type="relation"):
            fields = {"in": Field.record("user"), "out": Field.record("user")}
    """

    fields: ClassVar[dict[str, FieldDefinition]] = {}

    _table_name: ClassVar[str | None] = None
    _table_options: ClassVar[dict[str, Any]] = {}

    def __init_subclass__(
        cls,
        *,
        table: str | None = None,
        type: str = "normal",
        schemafull: bool = True,
        drop: bool = False,
        view: str | None = None,
        comment: str | None = None,
        permissions: PermissionsSpec = None,
        **kwargs: Any,
    ):
        super().__init_subclass__(**kwargs)
        cls._table_name = table or cls.__name__.lower()
        cls._table_options = {
            "type": "view" if view else type.lower(),
            "schemafull": schemafull,
            "drop": drop,
            "view": view,
            "comment": comment,
            "permissions": _to_permissions(permissions),
        }

    @classmethod
    def table_name(cls) -> str:
        if cls._table_name is None:
            raise TypeError("Table base class has no table name; subclass it")
        return cls._table_name

    @classmethod
    def describe(cls) -> ModelDescription:
        return ModelDescription(
            name=cls.table_name(),
            fields={name: field.describe() for name, field in cls.fields.items()},
            **cls._table_options,
        )


class Index:
    """Index definition bound to its owning model class."""

    def __init__(
        self,
        model: type[Table],
        *,
        name: str,
        fields: list[str],
        unique: bool = False,
        analyzer: str | None = None,
        comment: str | None = None,
    ):
        self.model = model
        self.name = name
        self.fields = list(fields)
        self.unique = unique
        self.analyzer = analyzer
        self.comment = comment

    def describe(self) -> IndexDescription:
        return IndexDescription(
            name=self.name,
            table=self.model.table_name(),
            columns=self.fields,
            unique=self.unique,
            analyzer=self.analyzer,
            comment=self.comment,
        )

    def __repr__(self) -> str:
        return f"Index({self.model.__name__}, name={self.name!r})"
