"""Pydantic models for catalog introspection.

Each model carries the minimal structural information needed to emit
valid DDL for one object kind.  Functions are identified by name *and*
identity-argument signature, since overloads share a name.
"""

from pydantic import BaseModel, Field


def quote_ident(name: str) -> str:
    """Quote an SQL identifier, doubling embedded double quotes.

    Example:
        >>> quote_ident('weird"name')
        '"weird""name"'
    """
    return '"' + name.replace('"', '""') + '"'


def qualified(schema: str, name: str) -> str:
    """Schema-qualified, quoted identifier."""
    return f"{quote_ident(schema)}.{quote_ident(name)}"


# ============================================================================
# Database-level objects
# ============================================================================


class ExtensionInfo(BaseModel):
    """An installed extension (``plpgsql`` excluded)."""

    name: str
    schema_name: str
    version: str = ""


class EnumType(BaseModel):
    """An enum type and its labels in sort order."""

    schema_name: str
    name: str
    labels: list[str] = Field(default_factory=list)


class SequenceInfo(BaseModel):
    """A sequence definition.

    Example:
        >>> seq = SequenceInfo(schema_name="public", name="t_id_seq")
        >>> seq.increment
        1
    """

    schema_name: str
    name: str
    data_type: str = "bigint"
    start: int = 1
    increment: int = 1
    min_value: int = 1
    max_value: int = 9223372036854775807
    cache: int = 1
    cycle: bool = False


# ============================================================================
# Tables
# ============================================================================


class ColumnInfo(BaseModel):
    """A table column as rendered by ``format_type``."""

    name: str
    data_type: str
    not_null: bool = False
    default: str | None = None
    identity: str = ""   # '' | 'a' (ALWAYS) | 'd' (BY DEFAULT)
    generated: str = ""  # '' | 's' (STORED)

    @property
    def is_generated(self) -> bool:
        return self.generated != ""


class TableConstraint(BaseModel):
    """A PRIMARY KEY, UNIQUE, CHECK or EXCLUDE constraint kept inline in CREATE TABLE."""

    name: str
    constraint_type: str  # p, u, c, x
    definition: str       # pg_get_constraintdef output


class TableInfo(BaseModel):
    """A table with its columns, inline constraints and extra indexes.

    ``relkind`` is ``r`` for ordinary tables (including inheritance
    parents and children) and ``p`` for partitioned parents.
    """

    schema_name: str
    name: str
    relkind: str = "r"
    columns: list[ColumnInfo] = Field(default_factory=list)
    constraints: list[TableConstraint] = Field(default_factory=list)
    indexes: list[str] = Field(default_factory=list)  # CREATE INDEX statements

    @property
    def qualified_name(self) -> str:
        return qualified(self.schema_name, self.name)

    @property
    def has_always_identity(self) -> bool:
        return any(c.identity == "a" for c in self.columns)

    @property
    def scan_source(self) -> str:
        """FROM target for the data scan.

        Inheritance parents are read with ``ONLY`` so child rows are dumped
        once, with the child.  Partitioned parents are read whole because
        their partitions are not dumped separately.
        """
        if self.relkind == "p":
            return self.qualified_name
        return f"ONLY {self.qualified_name}"

    def insertable_columns(self) -> list[ColumnInfo]:
        """Columns that accept explicit values (generated columns excluded)."""
        return [c for c in self.columns if not c.is_generated]


# ============================================================================
# Views, functions, triggers, foreign keys
# ============================================================================


class ViewInfo(BaseModel):
    """A view and its ``pg_get_viewdef`` body."""

    schema_name: str
    name: str
    definition: str
    materialized: bool = False


class FunctionInfo(BaseModel):
    """A function or procedure.

    ``identity_args`` is ``pg_get_function_identity_arguments`` output --
    together with the name it uniquely identifies an overload.
    """

    schema_name: str
    name: str
    identity_args: str = ""
    definition: str = ""  # pg_get_functiondef output

    @property
    def signature(self) -> str:
        return f"{qualified(self.schema_name, self.name)}({self.identity_args})"


class TriggerInfo(BaseModel):
    """A user trigger and its ``pg_get_triggerdef`` statement."""

    schema_name: str
    table_name: str
    name: str
    definition: str


class ForeignKeyInfo(BaseModel):
    """A foreign key constraint, emitted as ALTER TABLE after data load."""

    schema_name: str
    table_name: str
    name: str
    definition: str  # "FOREIGN KEY (...) REFERENCES ..."
