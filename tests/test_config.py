"""Tests for configuration and the command line entry point."""
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from pydantic import ValidationError

from notes_mcp import main as main_module
from notes_mcp.config import NotesConfig


class TestNotesConfig:
    def test_env_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("NOTES_MCP_BASE_DIR", str(tmp_path))
        monkeypatch.setenv("NOTES_MCP_DATABASE_PATH", "db/custom.db")
        monkeypatch.setenv("NOTES_MCP_IN_MEMORY_DB", "yes")
        monkeypatch.setenv("NOTES_MCP_LOG_LEVEL", "debug")
        monkeypatch.setenv("NOTES_MCP_BUSY_TIMEOUT", "5")

        cfg = NotesConfig()
        assert cfg.base_dir == tmp_path
        assert cfg.database_path == Path("db/custom.db")
        assert cfg.in_memory_db is True
        assert cfg.log_level == "DEBUG"
        assert cfg.busy_timeout == 5.0

    def test_in_memory_url(self):
        assert NotesConfig(in_memory_db=True).get_db_url() == "sqlite://"

    def test_file_url_creates_directory(self, tmp_path):
        cfg = NotesConfig(base_dir=tmp_path, database_path=Path("a/b/notes.db"), in_memory_db=False)
        url = cfg.get_db_url()
        assert url == f"sqlite:///{tmp_path / 'a' / 'b' / 'notes.db'}"
        assert (tmp_path / "a" / "b").is_dir()

    def test_absolute_path_kept(self, tmp_path):
        cfg = NotesConfig(base_dir=Path("/somewhere"))
        assert cfg.get_absolute_path(tmp_path) == tmp_path

    @pytest.mark.parametrize("kwargs", [{"busy_timeout": 0}, {"log_level": "LOUD"}])
    def test_invalid_settings_rejected(self, kwargs):
        with pytest.raises(ValidationError):
            NotesConfig(**kwargs)


class TestMain:
    def test_parse_args(self):
        args = main_module.parse_args(
            ["--database-path", "/tmp/x.db", "--in-memory", "--log-level", "DEBUG"]
        )
        assert args.database_path == "/tmp/x.db"
        assert args.in_memory is True
        assert args.log_level == "DEBUG"

    def test_update_config(self, test_config, tmp_path):
        args = main_module.parse_args(
            ["--database-path", str(tmp_path / "cli.db"), "--log-dir", str(tmp_path / "logs")]
        )
        main_module.update_config(args)
        assert test_config.database_path == tmp_path / "cli.db"
        assert test_config.log_dir == tmp_path / "logs"
        assert test_config.in_memory_db is False

    def test_main_runs_server(self, test_config):
        server = MagicMock()
        with patch.object(main_module, "configure_logging") as mock_logging, \
                patch.object(main_module, "NotesMcpServer", return_value=server) as mock_cls:
            main_module.main(["--in-memory", "--log-level", "WARNING"])

        mock_logging.assert_called_once()
        engine = mock_cls.call_args.kwargs["engine"]
        assert str(engine.url) == "sqlite://"
        server.run.assert_called_once_with()
        engine.dispose()

    def test_main_exits_when_server_fails(self, test_config):
        with patch.object(main_module, "configure_logging"), \
                patch.object(main_module, "NotesMcpServer", side_effect=RuntimeError("boom")):
            with pytest.raises(SystemExit) as exc_info:
                main_module.main(["--in-memory"])
        assert exc_info.value.code == 1


class TestPackaging:
    def test_mcp_capped_below_next_major(self):
        pyproject = Path(__file__).resolve().parents[1] / "pyproject.toml"
        requirements = [
            line.strip().strip('",')
            for line in pyproject.read_text(encoding="utf-8").splitlines()
            if line.strip().startswith('"mcp')
        ]
        assert requirements == ["mcp>=1.2.0,<2"]
