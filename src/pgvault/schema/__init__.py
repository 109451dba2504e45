"""Catalog introspection.

Usage:
    from pgvault.schema import CatalogIntrospector

    introspector = CatalogIntrospector(conn, schemas=["public"])
    tables = await introspector.list_tables(await introspector.list_schemas())
"""

from pgvault.schema.introspector import CatalogIntrospector, is_system_schema
from pgvault.schema.models import (
    ColumnInfo,
    EnumType,
    ExtensionInfo,
    ForeignKeyInfo,
    FunctionInfo,
    SequenceInfo,
    TableConstraint,
    TableInfo,
    TriggerInfo,
    ViewInfo,
    qualified,
    quote_ident,
)

__all__ = [
    "CatalogIntrospector",
    "is_system_schema",
    "ColumnInfo",
    "EnumType",
    "ExtensionInfo",
    "ForeignKeyInfo",
    "FunctionInfo",
    "SequenceInfo",
    "TableConstraint",
    "TableInfo",
    "TriggerInfo",
    "ViewInfo",
    "qualified",
    "quote_ident",
]
