"""Tests for the nimbus_db command line."""

from __future__ import annotations

import json
import sys

import pytest
from loguru import logger
from typer.testing import CliRunner

from nimbus_db.cli import app


@pytest.fixture(autouse=True)
def restore_logger():
    """Reset the log sink replaced by the CLI callback."""
    yield
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI runner."""
    return CliRunner()


@pytest.fixture
def expression_file(tmp_path):
    """Write a query expression file."""
    path = tmp_path / "query.json"
    path.write_text(
        json.dumps(
            {
                "children": [
                    {"field": "age", "op": "gte", "value": 2},
                    {
                        "combinator": "or",
                        "children": [
                            {"field": "dog", "value": "herc"},
                            {"field": "cat", "value": "fluffy"},
                        ],
                    },
                ]
            }
        )
    )
    return path


class TestQueryEncode:
    """Test the query encode command."""

    def test_json_output(self, runner, expression_file) -> None:
        """Test pairs printed as JSON."""
        result = runner.invoke(app, ["query", "encode", str(expression_file), "--json"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == [
            ["age[gte]", "2"],
            ["[or1].dog", "herc"],
            ["[or1].cat", "fluffy"],
        ]

    def test_table_output(self, runner, expression_file) -> None:
        """Test pairs printed as a table."""
        result = runner.invoke(app, ["query", "encode", str(expression_file)])
        assert result.exit_code == 0, result.output
        assert "age[gte]" in result.stdout
        assert "herc" in result.stdout

    def test_invalid_expression(self, runner, tmp_path) -> None:
        """Test invalid files exit with an error."""
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"children": [{"field": "a", "op": "like"}]}))
        result = runner.invoke(app, ["query", "encode", str(path)])
        assert result.exit_code == 1
        assert "Invalid query expression" in result.stdout

    def test_missing_file(self, runner, tmp_path) -> None:
        """Test a missing file is a usage error."""
        result = runner.invoke(app, ["query", "encode", str(tmp_path / "nope.json")])
        assert result.exit_code != 0


class TestSchemaShow:
    """Test the schema show command."""

    def test_show_book(self, runner) -> None:
        """Test schema details of a model."""
        result = runner.invoke(app, ["schema", "show", "sample_models:Book"])
        assert result.exit_code == 0, result.output
        assert "book_id" in result.stdout
        assert "primitive_array" in result.stdout
        assert "Names are valid" in result.stdout

    def test_bad_target(self, runner) -> None:
        """Test malformed targets are rejected."""
        result = runner.invoke(app, ["schema", "show", "sample_models"])
        assert result.exit_code != 0

    def test_not_a_model(self, runner) -> None:
        """Test non-model classes exit with an error."""
        result = runner.invoke(app, ["schema", "show", "json:JSONDecoder"])
        assert result.exit_code == 1


def test_verbose_flag(runner, expression_file) -> None:
    """Test the verbose flag is accepted before subcommands."""
    result = runner.invoke(app, ["--verbose", "query", "encode", str(expression_file), "--json"])
    assert result.exit_code == 0, result.output
