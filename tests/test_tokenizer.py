"""Tests for the SQL statement tokenizer."""

import pytest

from pgvault.script.tokenizer import (
    ScanState,
    Statement,
    parse_script,
    schema_directive,
    split_statements,
)


# ------------------------------------------------------------------
# Quoted strings
# ------------------------------------------------------------------


class TestQuotedStrings:
    """Semicolons and quotes inside string literals never split statements."""

    def test_semicolon_in_single_quotes(self):
        stmts = split_statements("INSERT INTO t VALUES ('a;b'); SELECT 1;")
        assert stmts == ["INSERT INTO t VALUES ('a;b');", "SELECT 1;"]

    def test_doubled_quote_is_literal(self):
        sql = "INSERT INTO t VALUES ('it''s; fine');\nINSERT INTO t VALUES ('ok');"
        stmts = split_statements(sql)
        assert len(stmts) == 2
        assert stmts[0] == "INSERT INTO t VALUES ('it''s; fine');"

    def test_double_quoted_identifier_with_semicolon(self):
        stmts = split_statements('CREATE TABLE "we;ird" (id int); SELECT 1;')
        assert stmts[0] == 'CREATE TABLE "we;ird" (id int);'
        assert len(stmts) == 2

    def test_doubled_double_quote(self):
        stmts = split_statements('SELECT 1 AS "a""b;c"; SELECT 2;')
        assert stmts == ['SELECT 1 AS "a""b;c";', "SELECT 2;"]

    def test_single_quote_inside_double_quotes(self):
        stmts = split_statements('SELECT 1 AS "it\'s;"; SELECT 2;')
        assert len(stmts) == 2

    def test_double_quote_inside_single_quotes(self):
        stmts = split_statements("SELECT 'say \"hi;\"'; SELECT 2;")
        assert stmts == ["SELECT 'say \"hi;\"';", "SELECT 2;"]

    def test_escape_string_backslash_quote(self):
        stmts = split_statements("SELECT E'a\\';b'; SELECT 2;")
        assert stmts == ["SELECT E'a\\';b';", "SELECT 2;"]

    def test_backslash_in_standard_string_is_literal(self):
        stmts = split_statements("SELECT 'C:\\'; SELECT 2;")
        assert stmts == ["SELECT 'C:\\';", "SELECT 2;"]

    def test_comment_markers_inside_string_kept(self):
        stmts = split_statements("INSERT INTO t VALUES ('-- not a comment /* nor this */');")
        assert stmts == ["INSERT INTO t VALUES ('-- not a comment /* nor this */');"]


# ------------------------------------------------------------------
# Comments
# ------------------------------------------------------------------


class TestComments:
    """Comment handling."""

    def test_comment_only_line_contributes_nothing(self):
        with_comment = "SELECT 1;\n-- a comment; with semicolon\nSELECT 2;"
        without = "SELECT 1;\nSELECT 2;"
        assert split_statements(with_comment) == split_statements(without)

    def test_indented_comment_line_dropped_mid_statement(self):
        sql = "SELECT\n    -- pick one\n    1;"
        assert split_statements(sql) == ["SELECT\n    1;"]

    def test_only_comments_yields_nothing(self):
        assert split_statements("-- one\n-- two\n") == []

    def test_trailing_line_comment_discarded(self):
        stmts = split_statements("SELECT 1; -- done; really\nSELECT 2;")
        assert stmts == ["SELECT 1;", "SELECT 2;"]

    def test_block_comment_discarded(self):
        stmts = split_statements("SELECT /* ; */ 1;")
        assert len(stmts) == 1
        assert ";" not in stmts[0][:-1]

    def test_multiline_block_comment(self):
        sql = "/*\n header; still comment\n*/\nSELECT 1;"
        assert split_statements(sql) == ["SELECT 1;"]

    def test_nested_block_comment(self):
        sql = "/* outer /* inner; */ still; */ SELECT 1;"
        assert split_statements(sql) == ["SELECT 1;"]


# ------------------------------------------------------------------
# Dollar quoting
# ------------------------------------------------------------------


FUNCTION_SQL = """CREATE OR REPLACE FUNCTION public.touch()
 RETURNS trigger
 LANGUAGE plpgsql
AS $function$
BEGIN
  NEW.updated_at := now();
  RETURN NEW;
END;
$function$
;
SELECT 1;"""


class TestDollarQuotes:
    """Dollar-quoted bodies stay whole by default."""

    def test_function_body_is_one_statement(self):
        stmts = split_statements(FUNCTION_SQL)
        assert len(stmts) == 2
        assert stmts[0].startswith("CREATE OR REPLACE FUNCTION")
        assert "RETURN NEW;" in stmts[0]
        assert stmts[1] == "SELECT 1;"

    def test_anonymous_tag(self):
        stmts = split_statements("DO $$ BEGIN PERFORM 1; END $$; SELECT 2;")
        assert stmts == ["DO $$ BEGIN PERFORM 1; END $$;", "SELECT 2;"]

    def test_other_tag_inside_body_does_not_close(self):
        sql = "SELECT $a$ x $b$ ; $b$ y; $a$; SELECT 2;"
        stmts = split_statements(sql)
        assert len(stmts) == 2

    def test_quotes_inside_body_ignored(self):
        stmts = split_statements("SELECT $$ it's; \"odd $$; SELECT 2;")
        assert len(stmts) == 2

    def test_positional_parameter_is_not_a_tag(self):
        stmts = split_statements("PREPARE q AS SELECT $1; SELECT 2;")
        assert stmts == ["PREPARE q AS SELECT $1;", "SELECT 2;"]

    def test_dollar_inside_identifier_is_not_a_tag(self):
        stmts = split_statements("SELECT a$b$ FROM t; SELECT 2;")
        assert len(stmts) == 2

    def test_legacy_mode_splits_inside_body(self):
        stmts = split_statements(
            "DO $$ BEGIN PERFORM 1; END $$; SELECT 2;", dollar_quotes=False
        )
        assert stmts == ["DO $$ BEGIN PERFORM 1;", "END $$;", "SELECT 2;"]


ATOMIC_SQL = """\
CREATE OR REPLACE FUNCTION public.add(a integer, b integer)
 RETURNS integer
 LANGUAGE sql
BEGIN ATOMIC
 SELECT (a + b);
END;
SELECT 2;"""


class TestAtomicBodies:
    """SQL-standard ``BEGIN ATOMIC ... END`` routine bodies stay whole."""

    def test_function_body_is_one_statement(self):
        stmts = split_statements(ATOMIC_SQL)
        assert len(stmts) == 2
        assert stmts[0].startswith("CREATE OR REPLACE FUNCTION public.add")
        assert stmts[0].endswith("END;")
        assert " SELECT (a + b);" in stmts[0]
        assert stmts[1] == "SELECT 2;"

    def test_several_statements_in_body(self):
        sql = (
            "CREATE PROCEDURE s.p()\n LANGUAGE sql\n"
            "BEGIN ATOMIC\n INSERT INTO s.t VALUES (1);\n INSERT INTO s.t VALUES (2);\nEND;\n"
            "SELECT 3;"
        )
        stmts = split_statements(sql)
        assert len(stmts) == 2
        assert stmts[0].count("INSERT INTO") == 2

    def test_case_end_does_not_close_body(self):
        sql = (
            "create function s.sign(x int) returns text language sql\n"
            "begin atomic\n"
            " select case when x > 0 then 'pos' else 'neg' end;\n"
            " select case x when 0 then 'zero' end;\n"
            "end;\n"
            "SELECT 2;"
        )
        stmts = split_statements(sql)
        assert len(stmts) == 2
        assert stmts[0].endswith("end;")

    def test_begin_outside_routine_is_ordinary(self):
        stmts = split_statements("BEGIN; INSERT INTO t VALUES (1); COMMIT;")
        assert stmts == ["BEGIN;", "INSERT INTO t VALUES (1);", "COMMIT;"]

    def test_keywords_in_strings_and_identifiers_ignored(self):
        sql = (
            "CREATE FUNCTION s.f() RETURNS text LANGUAGE sql\n"
            "BEGIN ATOMIC\n SELECT 'end; case' AS \"END\";\nEND;\n"
            "SELECT 2;"
        )
        assert len(split_statements(sql)) == 2

    def test_legacy_mode_splits_atomic_body(self):
        assert len(split_statements(ATOMIC_SQL, dollar_quotes=False)) == 3


# ------------------------------------------------------------------
# Statement boundaries
# ------------------------------------------------------------------


class TestBoundaries:
    """Emission rules for empty, punctuation-only and trailing text."""

    def test_statements_keep_semicolon(self):
        assert split_statements("SELECT 1;") == ["SELECT 1;"]

    def test_empty_statements_skipped(self):
        assert split_statements(";;  ;\n;SELECT 1;;") == ["SELECT 1;"]

    def test_punctuation_only_skipped(self):
        assert split_statements("(); SELECT 1;") == ["SELECT 1;"]

    def test_trailing_text_emitted(self):
        assert split_statements("SELECT 1; SELECT 2") == ["SELECT 1;", "SELECT 2"]

    def test_empty_input(self):
        assert split_statements("") == []

    @pytest.mark.parametrize("count", [1, 5, 100])
    def test_count_matches(self, count):
        sql = "\n".join(f"INSERT INTO t VALUES ({i}, 'v;{i}');" for i in range(count))
        assert len(split_statements(sql)) == count


# ------------------------------------------------------------------
# Schema tags
# ------------------------------------------------------------------


class TestSchemaTags:
    """Directive comments tag following statements."""

    def test_tags_applied(self):
        sql = "\n".join([
            schema_directive("public"),
            "CREATE TABLE public.a (id int);",
            schema_directive("sales"),
            "CREATE TABLE sales.b (id int);",
            "INSERT INTO sales.b VALUES (1);",
        ])
        stmts = parse_script(sql)
        assert [s.schema for s in stmts] == ["public", "sales", "sales"]

    def test_untagged_is_none(self):
        assert parse_script("SELECT 1;") == [Statement("SELECT 1;", None)]

    def test_empty_directive_clears_tag(self):
        sql = f"{schema_directive('public')}\nSELECT 1;\n{schema_directive(None)}\nSELECT 2;"
        assert [s.schema for s in parse_script(sql)] == ["public", None]

    def test_directive_text_not_in_statement(self):
        stmts = parse_script(f"{schema_directive('x')}\nSELECT 1;")
        assert "pgvault" not in stmts[0].text

    def test_is_data(self):
        assert Statement("  insert into t values (1);").is_data
        assert Statement("COPY t FROM stdin;").is_data
        assert not Statement("CREATE TABLE t (id int);").is_data


def test_scan_states_cover_all_contexts():
    assert {s.name for s in ScanState} == {
        "NORMAL",
        "IN_SINGLE_QUOTE",
        "IN_DOUBLE_QUOTE",
        "IN_LINE_COMMENT",
        "IN_BLOCK_COMMENT",
        "IN_DOLLAR_QUOTE",
    }
