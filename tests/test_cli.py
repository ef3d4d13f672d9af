"""Tests for the surql-sync command line.

Commands run against ``.surql`` schema files and temporary model
directories, so no database is needed.
"""

import textwrap
from unittest.mock import AsyncMock

import pytest

import surql_sync.cli as cli
from surql_sync.cli import build_parser, cmd_diff, cmd_profiles, cmd_pull, cmd_push, main
from surql_sync.codegen.generator import generate_code
from surql_sync.schema.parser import parse_surql

SCHEMA = textwrap.dedent(
    """\
    DEFINE TABLE user SCHEMAFULL;
    DEFINE FIELD email ON TABLE user TYPE string;
    DEFINE FIELD name ON TABLE user TYPE option<string>;
    DEFINE INDEX idx_email ON TABLE user FIELDS email UNIQUE;
    """
)

CONFIG = textwrap.dedent(
    """\
    default_profile = "local"

    [profiles.local]
    url = "http://localhost:8000"
    namespace = "app"
    database = "dev"
    description = "Local dev server"

    [profiles.prod]
    url = "https://db.example.com"
    namespace = "app"
    database = "main"
    """
)


@pytest.fixture
def schema_file(tmp_path):
    path = tmp_path / "schema.surql"
    path.write_text(SCHEMA)
    return path


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "surql-sync.toml"
    path.write_text(CONFIG)
    return path


# ============================================================================
# Test: Argument Parsing
# ============================================================================


class TestBuildParser:
    """Verify subcommands and options."""

    def test_subcommand_dispatch(self):
        """Each subcommand binds its handler."""
        parser = build_parser()
        assert parser.parse_args(["profiles"]).func is cmd_profiles
        assert parser.parse_args(["diff"]).func is cmd_diff
        assert parser.parse_args(["pull"]).func is cmd_pull
        assert parser.parse_args(["push"]).func is cmd_push

    def test_global_options(self):
        """Global options precede the subcommand."""
        args = build_parser().parse_args(["--profile", "prod", "--env-prefix", "APP_", "diff", "--detailed"])
        assert args.profile == "prod"
        assert args.env_prefix == "APP_"
        assert args.detailed is True

    def test_push_defaults_to_preview(self):
        """push neither confirms nor dry-runs unless asked."""
        args = build_parser().parse_args(["push"])
        assert args.confirm is False
        assert args.dry_run is False

    def test_push_modes_exclusive(self):
        """--dry-run and --confirm cannot be combined."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["push", "--dry-run", "--confirm"])

    def test_command_required(self):
        """A subcommand must be given."""
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


# ============================================================================
# Test: profiles
# ============================================================================


class TestProfilesCommand:
    """Verify profile listing from local config only."""

    def test_lists_profiles(self, config_file, capsys):
        """All profiles are listed and the active one is marked."""
        assert main(["--config", str(config_file), "profiles"]) == 0
        output = capsys.readouterr().out
        assert "local" in output
        assert "prod" in output
        assert "active profile" in output

    def test_missing_config(self, tmp_path, capsys):
        """A missing config is an error."""
        assert main(["--config", str(tmp_path / "missing.toml"), "profiles"]) == 1
        assert "Sync config not found" in capsys.readouterr().out


# ============================================================================
# Test: diff
# ============================================================================


class TestDiffCommand:
    """Verify diff exit codes against a schema file."""

    def test_identical(self, schema_file, tmp_path, capsys):
        """Models generated from the schema match it."""
        models_dir = tmp_path / "models"
        models_dir.mkdir()
        for filename, content in generate_code(parse_surql(SCHEMA)).items():
            (models_dir / filename).write_text(content)

        code = main(["diff", "--schema-file", str(schema_file), "--models-dir", str(models_dir)])

        assert code == 0
        assert "Schemas are identical" in capsys.readouterr().out

    def test_differences(self, schema_file, tmp_path, capsys):
        """An empty models directory differs by the whole table."""
        models_dir = tmp_path / "models"
        models_dir.mkdir()

        code = main(["diff", "--schema-file", str(schema_file), "--models-dir", str(models_dir)])

        assert code == 1
        output = capsys.readouterr().out
        assert "1 difference(s) found" in output
        assert "user" in output

    def test_missing_schema_file(self, tmp_path):
        """A missing schema file is an error."""
        code = main(["diff", "--schema-file", str(tmp_path / "none.surql"), "--models-dir", str(tmp_path)])
        assert code == 1


# ============================================================================
# Test: pull
# ============================================================================


class TestPullCommand:
    """Verify pull writes model files."""

    def test_dry_run_writes_nothing(self, schema_file, tmp_path, capsys):
        """Dry run prints the plan only."""
        models_dir = tmp_path / "models"

        code = main(["pull", "--schema-file", str(schema_file), "--models-dir", str(models_dir), "--dry-run"])

        assert code == 0
        assert not models_dir.exists()
        assert "+ user.py" in capsys.readouterr().out

    def test_creates_then_up_to_date(self, schema_file, tmp_path, capsys):
        """A second pull finds nothing to do."""
        models_dir = tmp_path / "models"
        args = ["pull", "--schema-file", str(schema_file), "--models-dir", str(models_dir)]

        assert main(args) == 0
        assert (models_dir / "user.py").read_text() == generate_code(parse_surql(SCHEMA))["user.py"]

        capsys.readouterr()
        assert main(args) == 0
        assert "Model files are up to date" in capsys.readouterr().out

    def test_merges_new_field(self, schema_file, tmp_path):
        """A field added in the database is merged into the existing file."""
        models_dir = tmp_path / "models"
        models_dir.mkdir()
        hand_written = generate_code(parse_surql(SCHEMA.replace("DEFINE FIELD name ON TABLE user TYPE option<string>;\n", "")))
        content = hand_written["user.py"].replace("class User(", "# Accounts\nclass User(")
        (models_dir / "user.py").write_text(content)

        assert main(["pull", "--schema-file", str(schema_file), "--models-dir", str(models_dir)]) == 0

        merged = (models_dir / "user.py").read_text()
        assert "# Accounts\nclass User(" in merged
        assert "'name': Field.option(Field.string())," in merged

    def test_deletes_stale_file(self, schema_file, tmp_path):
        """Model files without a database table are removed."""
        models_dir = tmp_path / "models"
        models_dir.mkdir()
        (models_dir / "legacy.py").write_text("LEGACY_DEFINITIONS = []\n")

        assert main(["pull", "--schema-file", str(schema_file), "--models-dir", str(models_dir)]) == 0

        assert not (models_dir / "legacy.py").exists()
        assert (models_dir / "user.py").exists()


# ============================================================================
# Test: push
# ============================================================================


class TestPushCommand:
    """Verify push fails cleanly without a usable profile."""

    def test_missing_config(self, tmp_path, capsys):
        """push needs a connection profile."""
        code = main(["--config", str(tmp_path / "missing.toml"), "push", "--models-dir", str(tmp_path)])
        assert code == 1
        assert "Sync config not found" in capsys.readouterr().out

    def test_unknown_profile(self, config_file, tmp_path, capsys):
        """An unknown profile is reported before connecting."""
        code = main(["--config", str(config_file), "--profile", "staging", "push", "--models-dir", str(tmp_path)])
        assert code == 1
        assert "Profile 'staging' not found" in capsys.readouterr().out


class TestPushAgainstDatabase:
    """Verify push planning and applying with a mocked database client."""

    @pytest.fixture
    def client(self):
        """Client whose database has the user table without the name field."""
        mock = AsyncMock()

        async def _query(sql):
            if sql == "INFO FOR DB":
                return [{"tables": {"user": "DEFINE TABLE user TYPE NORMAL SCHEMAFULL"}}]
            return [
                {
                    "fields": {"email": "DEFINE FIELD email ON user TYPE string"},
                    "indexes": {"idx_email": "DEFINE INDEX idx_email ON user FIELDS email UNIQUE"},
                    "events": {},
                }
            ]

        mock.query = AsyncMock(side_effect=_query)
        mock.execute_batch = AsyncMock()
        mock.close = AsyncMock()
        return mock

    @pytest.fixture
    def connect(self, client, monkeypatch):
        """Route get_adapter to the mocked client and record calls."""
        calls = []

        def _get_adapter(profile_name=None, config_path=None, env_prefix=""):
            calls.append(profile_name)
            return "local", client

        monkeypatch.setattr(cli, "get_adapter", _get_adapter)
        return calls

    @pytest.fixture
    def models_dir(self, tmp_path):
        directory = tmp_path / "models"
        directory.mkdir()
        for filename, content in generate_code(parse_surql(SCHEMA)).items():
            (directory / filename).write_text(content)
        return directory

    def test_missing_models_dir_refused(self, connect, client, tmp_path, capsys):
        """A missing models directory never turns into dropped tables."""
        code = main(["push", "--models-dir", str(tmp_path / "typo"), "--confirm"])

        assert code == 1
        output = capsys.readouterr().out
        assert "Models directory not found" in output
        assert "REMOVE TABLE" not in output
        assert connect == []
        client.execute_batch.assert_not_called()

    def test_preview_without_confirm(self, connect, client, models_dir, capsys):
        """Without --confirm the migration is shown, not applied."""
        assert main(["push", "--models-dir", str(models_dir)]) == 0

        output = capsys.readouterr().out
        assert "DEFINE FIELD name ON TABLE user TYPE option<string>;" in output
        assert "--confirm" in output
        client.execute_batch.assert_not_called()
        client.close.assert_awaited_once()

    def test_confirm_applies(self, connect, client, models_dir):
        """--confirm sends the migration as one batch."""
        assert main(["push", "--models-dir", str(models_dir), "--confirm"]) == 0

        client.execute_batch.assert_awaited_once_with(["DEFINE FIELD name ON TABLE user TYPE option<string>;"])
        client.close.assert_awaited_once()
