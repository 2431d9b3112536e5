"""Tests for the optionsengine command line interface."""

import json

import pytest
from click.testing import CliRunner

from optionsengine import __version__
from optionsengine.cli.main import cli
from optionsengine.storage.host import JsonFileHost, blog_table

SCHEMA = """\
version: "1.0"
options:
  retries:
    default: 3
    sanitize: [to_int]
    validate: [is_positive_int]
  mode:
    default: fast
    validate: [is_string]
    choices: [fast, safe]
"""


@pytest.fixture
def store(tmp_path):
    return tmp_path / "options.json"


@pytest.fixture
def schema_file(tmp_path):
    path = tmp_path / "schema.yaml"
    path.write_text(SCHEMA)
    return str(path)


@pytest.fixture
def run(store):
    """Invoke the CLI against a JSON file store."""
    runner = CliRunner()
    env = {
        "OPTIONSENGINE_STORAGE_HOST": "json_file",
        "OPTIONSENGINE_STORAGE_PATH": str(store),
        "OPTIONSENGINE_STORAGE_SCOPE": None,
        "OPTIONSENGINE_STORAGE_BLOG_ID": None,
        "OPTIONSENGINE_STORAGE_USER_ID": None,
        "OPTIONSENGINE_STORAGE_USER_STORAGE": None,
        "OPTIONSENGINE_LOG_LEVEL": None,
        "OPTIONSENGINE_LOG_FORMAT": None,
        "OPTIONSENGINE_LOG_OUTPUT": None,
    }

    def invoke(*args, **kwargs):
        return runner.invoke(cli, list(args), env=env, **kwargs)

    return invoke


class TestCLIBasics:
    """Test group-level behaviour."""

    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "schema-driven options storage" in result.output

    def test_version(self, run):
        result = run("version")

        assert result.exit_code == 0
        assert f"optionsengine v{__version__}" in result.output

    def test_invalid_config_file(self, tmp_path):
        config = tmp_path / "storage.yaml"
        config.write_text("storage:\n  host: redis\n")

        result = CliRunner().invoke(cli, ["--config", str(config), "show", "app"])

        assert result.exit_code == 1
        assert "Unsupported host" in result.output


class TestSchemaCommand:
    """Test schema file validation."""

    def test_prints_export_view(self, run, schema_file):
        result = run("schema", schema_file)

        assert result.exit_code == 0
        assert "is_positive_int" in result.output
        assert "to_int" in result.output

    def test_invalid_schema(self, run, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("options:\n  retries:\n    validate: [is_spaceship]\n")

        result = run("schema", str(path))

        assert result.exit_code == 1
        assert "Error:" in result.output


class TestReadWriteCommands:
    """Test commands that read and write option records."""

    def test_show_missing_record(self, run):
        result = run("show", "app")

        assert result.exit_code == 0
        assert result.output.strip() == "{}"

    def test_set_then_show_and_get(self, run, schema_file, store):
        result = run("set", "app", "retries", "5", "--schema", schema_file)
        assert result.exit_code == 0
        assert "Set retries on app" in result.output

        assert JsonFileHost(store).read(blog_table(1), "app") == {"retries": 5, "mode": "fast"}

        shown = run("show", "app", "--format", "json")
        assert json.loads(shown.output) == {"mode": "fast", "retries": 5}

        got = run("get", "app", "retries")
        assert got.exit_code == 0
        assert got.output.strip() == "5"

    def test_set_sanitizes_string_values(self, run, schema_file, store):
        result = run("set", "app", "retries", "'7'", "--schema", schema_file)

        assert result.exit_code == 0
        assert JsonFileHost(store).read(blog_table(1), "app")["retries"] == 7

    def test_set_invalid_value(self, run, schema_file, store):
        result = run("set", "app", "mode", "turbo", "--schema", schema_file)

        assert result.exit_code == 1
        assert "Validation failed for option 'mode'" in result.output
        assert not store.exists()

    def test_set_unregistered_key(self, run, schema_file):
        result = run("set", "app", "colour", "red", "--schema", schema_file)

        assert result.exit_code == 1
        assert "No schema defined" in result.output

    def test_get_missing_key(self, run):
        result = run("get", "app", "retries")

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_delete(self, run, schema_file, store):
        run("set", "app", "retries", "5", "--schema", schema_file)

        result = run("delete", "app", "retries")
        assert result.exit_code == 0
        assert JsonFileHost(store).read(blog_table(1), "app") == {"mode": "fast"}

        again = run("delete", "app", "retries")
        assert again.exit_code == 2

    def test_clear_requires_confirmation(self, run, schema_file, store):
        run("set", "app", "retries", "5", "--schema", schema_file)

        aborted = run("clear", "app", input="n\n")
        assert aborted.exit_code == 1
        assert JsonFileHost(store).read(blog_table(1), "app") != {}

        result = run("clear", "app", "--yes")
        assert result.exit_code == 0
        assert JsonFileHost(store).read(blog_table(1), "app") == {}

    def test_seed(self, run, schema_file, store):
        result = run("seed", "app", "--schema", schema_file)

        assert result.exit_code == 0
        assert "Seeded app" in result.output
        assert JsonFileHost(store).read(blog_table(1), "app") == {"retries": 3, "mode": "fast"}
        assert JsonFileHost(store).autoload_flag(blog_table(1), "app") is True

    def test_config_file_selects_scope(self, tmp_path, schema_file):
        store = tmp_path / "blog-store.json"
        config = tmp_path / "storage.yaml"
        config.write_text(
            "storage:\n"
            "  host: json_file\n"
            "  host_config:\n"
            f"    path: {store}\n"
            "  scope: subsite\n"
            "  blog_id: 2\n"
        )

        result = CliRunner().invoke(
            cli, ["--config", str(config), "set", "app", "retries", "4", "--schema", schema_file]
        )

        assert result.exit_code == 0
        assert JsonFileHost(store).read(blog_table(2), "app") == {"retries": 4, "mode": "fast"}

    def test_debug_json_logs_gate_steps(self, run, schema_file):
        result = run(
            "--log-level", "DEBUG", "--log-format", "json",
            "set", "app", "retries", "5", "--schema", schema_file,
        )

        assert result.exit_code == 0
        assert '"gate_step": "final"' in result.output
        assert '"correlation_id"' in result.output
