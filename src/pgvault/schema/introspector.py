"""PostgreSQL catalog introspection via pg_catalog.

This module queries the live database to extract the objects a logical
dump needs, scoped to a schema allow-list:
- Schemas, extensions, enum types, sequences
- Tables (columns, defaults, identity/generated, inline constraints, indexes)
- Views, functions (name + identity signature), triggers, foreign keys

System schemas (``pg_catalog``, ``information_schema``, ``pg_toast`` and
the temp/toast-temp namespaces) are excluded unless named explicitly.

Any catalog query failure is fatal to a dump run: the driver error is
wrapped in ``IntrospectionError`` and propagated.

Usage:
    introspector = CatalogIntrospector(conn, schemas=["public"])
    schemas = await introspector.list_schemas()
    tables = await introspector.list_tables(schemas)
"""

import logging
from collections.abc import Sequence
from typing import Any

import psycopg

from pgvault.adapters.base import SqlConnection
from pgvault.errors import IntrospectionError
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
)

logger = logging.getLogger(__name__)

SYSTEM_SCHEMAS = frozenset({"pg_catalog", "information_schema", "pg_toast"})


def is_system_schema(name: str) -> bool:
    """True for built-in namespaces that are never dumped implicitly."""
    return (
        name in SYSTEM_SCHEMAS
        or name.startswith("pg_temp_")
        or name.startswith("pg_toast_temp_")
    )


class CatalogIntrospector:
    """Introspects a PostgreSQL database's catalogs.

    Works against any ``SqlConnection``.  Every ``list_*`` method takes the
    resolved list of schemas returned by ``list_schemas()``.

    Args:
        conn: Open connection.
        schemas: Optional allow-list.  ``None`` means every non-system
            schema.  System schemas listed here explicitly *are* included.
    """

    def __init__(
        self, conn: SqlConnection, schemas: Sequence[str] | None = None
    ) -> None:
        self._conn = conn
        self._allow = list(schemas) if schemas else None

    async def _query(self, sql: str, params: Sequence[Any] | None = None) -> list[tuple]:
        try:
            return await self._conn.fetch_all(sql, params)
        except psycopg.Error as e:
            logger.error(f"[pgvault.introspect] Catalog query failed: {e}")
            raise IntrospectionError(f"Catalog query failed: {e}") from e

    # ------------------------------------------------------------------
    # Schemas and database-level objects
    # ------------------------------------------------------------------

    async def list_schemas(self) -> list[str]:
        """Return the schemas in scope, ``public`` first then alphabetical."""
        rows = await self._query("""
            SELECT nspname
            FROM pg_namespace
            ORDER BY nspname = 'public' DESC, nspname
        """)
        names = [row[0] for row in rows]
        if self._allow is not None:
            return [n for n in names if n in self._allow]
        return [n for n in names if not is_system_schema(n)]

    async def database_size(self) -> int:
        """On-disk size of the current database in bytes."""
        rows = await self._query("SELECT pg_database_size(current_database())")
        return int(rows[0][0]) if rows else 0

    async def count_tables(self, schemas: Sequence[str]) -> int:
        """Number of tables in ``schemas`` (partitions not counted)."""
        if not schemas:
            return 0
        rows = await self._query("""
            SELECT count(*)
            FROM pg_class c
            JOIN pg_namespace n ON n.oid = c.relnamespace
            WHERE c.relkind IN ('r', 'p')
              AND NOT c.relispartition
              AND n.nspname = ANY(%s)
        """, (list(schemas),))
        return int(rows[0][0]) if rows else 0

    async def list_extensions(self) -> list[ExtensionInfo]:
        """Installed extensions other than ``plpgsql``."""
        rows = await self._query("""
            SELECT e.extname, n.nspname, e.extversion
            FROM pg_extension e
            JOIN pg_namespace n ON n.oid = e.extnamespace
            WHERE e.extname <> 'plpgsql'
            ORDER BY e.extname
        """)
        return [
            ExtensionInfo(name=name, schema_name=schema, version=version or "")
            for name, schema, version in rows
        ]

    async def list_enums(self, schemas: Sequence[str]) -> list[EnumType]:
        """Enum types with labels in sort order."""
        if not schemas:
            return []
        rows = await self._query("""
            SELECT n.nspname, t.typname,
                   array_agg(e.enumlabel ORDER BY e.enumsortorder) AS labels
            FROM pg_type t
            JOIN pg_enum e ON e.enumtypid = t.oid
            JOIN pg_namespace n ON n.oid = t.typnamespace
            WHERE n.nspname = ANY(%s)
              AND NOT EXISTS (
                  SELECT 1 FROM pg_depend d
                  WHERE d.objid = t.oid AND d.deptype = 'e'
              )
            GROUP BY n.nspname, t.typname
            ORDER BY n.nspname, t.typname
        """, (list(schemas),))
        return [
            EnumType(schema_name=schema, name=name, labels=list(labels))
            for schema, name, labels in rows
        ]

    async def list_sequences(self, schemas: Sequence[str]) -> list[SequenceInfo]:
        """Sequences to create (identity-backing ones are skipped)."""
        if not schemas:
            return []
        rows = await self._query("""
            SELECT n.nspname, c.relname,
                   format_type(s.seqtypid, NULL),
                   s.seqstart, s.seqincrement, s.seqmin, s.seqmax,
                   s.seqcache, s.seqcycle,
                   EXISTS (
                       SELECT 1 FROM pg_depend d
                       WHERE d.objid = c.oid AND d.deptype = 'i'
                   ) AS is_identity
            FROM pg_class c
            JOIN pg_namespace n ON n.oid = c.relnamespace
            JOIN pg_sequence s ON s.seqrelid = c.oid
            WHERE c.relkind = 'S'
              AND n.nspname = ANY(%s)
            ORDER BY n.nspname, c.relname
        """, (list(schemas),))
        sequences = []
        for (schema, name, data_type, start, inc, min_v, max_v,
             cache, cycle, is_identity) in rows:
            # Identity sequences are created implicitly by their column
            if is_identity:
                continue
            sequences.append(
                SequenceInfo(
                    schema_name=schema,
                    name=name,
                    data_type=data_type,
                    start=start,
                    increment=inc,
                    min_value=min_v,
                    max_value=max_v,
                    cache=cache,
                    cycle=cycle,
                )
            )
        return sequences

    async def sequence_values(self, schemas: Sequence[str]) -> list[tuple[str, str, int]]:
        """Current ``last_value`` of every called sequence (identity ones included).

        Returns:
            List of ``(schema, sequence_name, last_value)``.
        """
        if not schemas:
            return []
        rows = await self._query("""
            SELECT schemaname, sequencename, last_value
            FROM pg_sequences
            WHERE schemaname = ANY(%s)
              AND last_value IS NOT NULL
            ORDER BY schemaname, sequencename
        """, (list(schemas),))
        return [(schema, name, value) for schema, name, value in rows]

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    async def list_tables(self, schemas: Sequence[str]) -> list[TableInfo]:
        """Base tables with columns, constraints and indexes.

        Partitioned parents are listed as plain tables; their partitions are
        skipped (a scan of the parent already returns their rows).
        Inheritance children are listed like any other table.
        """
        if not schemas:
            return []
        rows = await self._query("""
            SELECT n.nspname, c.relname, c.relkind
            FROM pg_class c
            JOIN pg_namespace n ON n.oid = c.relnamespace
            WHERE c.relkind IN ('r', 'p')
              AND NOT c.relispartition
              AND n.nspname = ANY(%s)
              AND NOT EXISTS (
                  SELECT 1 FROM pg_depend d
                  WHERE d.objid = c.oid AND d.deptype = 'e'
              )
            ORDER BY n.nspname, c.relname
        """, (list(schemas),))

        tables = []
        for schema, name, relkind in rows:
            table = TableInfo(schema_name=schema, name=name, relkind=relkind)
            table.columns = await self.list_columns(schema, name)
            table.constraints = await self._get_table_constraints(schema, name)
            table.indexes = await self._get_indexes(schema, name)
            tables.append(table)
        return tables

    async def list_columns(self, schema: str, table: str) -> list[ColumnInfo]:
        """Columns in ordinal order (dropped and system columns excluded)."""
        rows = await self._query("""
            SELECT a.attname,
                   format_type(a.atttypid, a.atttypmod),
                   a.attnotnull,
                   pg_get_expr(d.adbin, d.adrelid),
                   a.attidentity,
                   a.attgenerated
            FROM pg_attribute a
            JOIN pg_class c ON c.oid = a.attrelid
            JOIN pg_namespace n ON n.oid = c.relnamespace
            LEFT JOIN pg_attrdef d ON d.adrelid = a.attrelid AND d.adnum = a.attnum
            WHERE n.nspname = %s
              AND c.relname = %s
              AND a.attnum > 0
              AND NOT a.attisdropped
            ORDER BY a.attnum
        """, (schema, table))
        return [
            ColumnInfo(
                name=col_name,
                data_type=data_type,
                not_null=not_null,
                default=default,
                identity=identity or "",
                generated=generated or "",
            )
            for col_name, data_type, not_null, default, identity, generated in rows
        ]

    async def _get_table_constraints(self, schema: str, table: str) -> list[TableConstraint]:
        """Primary key, unique, check and exclusion constraints (FKs excluded)."""
        rows = await self._query("""
            SELECT con.conname, con.contype, pg_get_constraintdef(con.oid)
            FROM pg_constraint con
            JOIN pg_class c ON c.oid = con.conrelid
            JOIN pg_namespace n ON n.oid = c.relnamespace
            WHERE n.nspname = %s
              AND c.relname = %s
              AND con.contype IN ('p', 'u', 'c', 'x')
              AND con.conislocal
            ORDER BY con.contype = 'p' DESC, con.conname
        """, (schema, table))
        return [
            TableConstraint(name=name, constraint_type=ctype, definition=definition)
            for name, ctype, definition in rows
        ]

    async def _get_indexes(self, schema: str, table: str) -> list[str]:
        """CREATE INDEX statements for indexes not backing a constraint."""
        rows = await self._query("""
            SELECT pg_get_indexdef(ix.indexrelid)
            FROM pg_index ix
            JOIN pg_class t ON t.oid = ix.indrelid
            JOIN pg_class i ON i.oid = ix.indexrelid
            JOIN pg_namespace n ON n.oid = t.relnamespace
            WHERE n.nspname = %s
              AND t.relname = %s
              AND NOT EXISTS (
                  SELECT 1 FROM pg_constraint con
                  WHERE con.conindid = ix.indexrelid
                    AND con.contype IN ('p', 'u', 'x')
              )
            ORDER BY i.relname
        """, (schema, table))
        return [row[0] for row in rows]

    # ------------------------------------------------------------------
    # Views, functions, triggers, foreign keys
    # ------------------------------------------------------------------

    async def list_views(self, schemas: Sequence[str]) -> list[ViewInfo]:
        """Views and materialized views in OID order (creation order)."""
        if not schemas:
            return []
        rows = await self._query("""
            SELECT n.nspname, c.relname, pg_get_viewdef(c.oid, true), c.relkind = 'm'
            FROM pg_class c
            JOIN pg_namespace n ON n.oid = c.relnamespace
            WHERE c.relkind IN ('v', 'm')
              AND n.nspname = ANY(%s)
              AND NOT EXISTS (
                  SELECT 1 FROM pg_depend d
                  WHERE d.objid = c.oid AND d.deptype = 'e'
              )
            ORDER BY c.oid
        """, (list(schemas),))
        return [
            ViewInfo(schema_name=schema, name=name, definition=definition, materialized=mat)
            for schema, name, definition, mat in rows
        ]

    async def list_functions(self, schemas: Sequence[str]) -> list[FunctionInfo]:
        """User functions and procedures with identity signatures.

        Note: aggregates (``prokind = 'a'``) are skipped --
        ``pg_get_functiondef`` cannot render them -- as are functions owned
        by an extension, which CREATE EXTENSION recreates.
        """
        if not schemas:
            return []
        rows = await self._query("""
            SELECT n.nspname, p.proname,
                   pg_get_function_identity_arguments(p.oid),
                   pg_get_functiondef(p.oid)
            FROM pg_proc p
            JOIN pg_namespace n ON n.oid = p.pronamespace
            WHERE n.nspname = ANY(%s)
              AND p.prokind IN ('f', 'p', 'w')
              AND NOT EXISTS (
                  SELECT 1 FROM pg_depend d
                  WHERE d.objid = p.oid AND d.deptype = 'e'
              )
            ORDER BY n.nspname, p.proname, p.oid
        """, (list(schemas),))
        return [
            FunctionInfo(
                schema_name=schema,
                name=name,
                identity_args=args or "",
                definition=definition,
            )
            for schema, name, args, definition in rows
        ]

    async def list_triggers(self, schemas: Sequence[str]) -> list[TriggerInfo]:
        """User (non-internal) triggers."""
        if not schemas:
            return []
        rows = await self._query("""
            SELECT n.nspname, c.relname, t.tgname, pg_get_triggerdef(t.oid, true)
            FROM pg_trigger t
            JOIN pg_class c ON c.oid = t.tgrelid
            JOIN pg_namespace n ON n.oid = c.relnamespace
            WHERE NOT t.tgisinternal
              AND n.nspname = ANY(%s)
            ORDER BY n.nspname, c.relname, t.tgname
        """, (list(schemas),))
        return [
            TriggerInfo(schema_name=schema, table_name=table, name=name, definition=definition)
            for schema, table, name, definition in rows
        ]

    async def list_foreign_keys(self, schemas: Sequence[str]) -> list[ForeignKeyInfo]:
        """Foreign key constraints on tables in scope."""
        if not schemas:
            return []
        rows = await self._query("""
            SELECT n.nspname, c.relname, con.conname, pg_get_constraintdef(con.oid)
            FROM pg_constraint con
            JOIN pg_class c ON c.oid = con.conrelid
            JOIN pg_namespace n ON n.oid = c.relnamespace
            WHERE con.contype = 'f'
              AND con.conislocal
              AND n.nspname = ANY(%s)
            ORDER BY n.nspname, c.relname, con.conname
        """, (list(schemas),))
        return [
            ForeignKeyInfo(schema_name=schema, table_name=table, name=name, definition=definition)
            for schema, table, name, definition in rows
        ]

    # ------------------------------------------------------------------
    # Cleanup enumeration
    # ------------------------------------------------------------------

    async def list_relation_names(self, schema: str, relkinds: Sequence[str]) -> list[str]:
        """Names of relations of the given kinds in one schema.

        Used by the cleanup planner (``('r', 'p')`` tables, ``('v', 'm')``
        views, ``('S',)`` sequences).
        """
        rows = await self._query("""
            SELECT c.relname
            FROM pg_class c
            JOIN pg_namespace n ON n.oid = c.relnamespace
            WHERE n.nspname = %s
              AND c.relkind = ANY(%s)
              AND NOT c.relispartition
              AND NOT EXISTS (
                  SELECT 1 FROM pg_depend d
                  WHERE d.objid = c.oid AND d.deptype = 'e'
              )
            ORDER BY c.relname
        """, (schema, list(relkinds)))
        return [row[0] for row in rows]

    async def list_function_signatures(self, schema: str) -> list[tuple[str, str, str]]:
        """``(name, identity_args, kind)`` for every non-extension routine in a schema."""
        rows = await self._query("""
            SELECT p.proname, pg_get_function_identity_arguments(p.oid), p.prokind
            FROM pg_proc p
            JOIN pg_namespace n ON n.oid = p.pronamespace
            WHERE n.nspname = %s
              AND NOT EXISTS (
                  SELECT 1 FROM pg_depend d
                  WHERE d.objid = p.oid AND d.deptype = 'e'
              )
            ORDER BY p.proname, p.oid
        """, (schema,))
        return [(name, args or "", kind) for name, args, kind in rows]
