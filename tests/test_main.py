import pytest
from pathlib import Path
from unittest.mock import patch, AsyncMock

from application.dtos import CacheOutcome, LoadStatus
from domain.errors import InstallError
from main import build_parser, default_cache_dir, main, parse_manager_args, CACHE_DIR_ENV


class TestParseManagerArgs:
    AVAILABLE = ["npm", "bower", "composer"]

    def test_no_tokens_selects_all(self):
        assert parse_manager_args([], self.AVAILABLE) == {"npm": "", "bower": "", "composer": ""}

    def test_options_grouped_by_manager(self):
        tokens = ["npm", "--production", "--no-optional", "bower", "--allow-root", "composer"]

        managers = parse_manager_args(tokens, self.AVAILABLE)

        assert managers == {
            "npm": "--production --no-optional",
            "bower": "--allow-root",
            "composer": ""
        }
        assert list(managers) == ["npm", "bower", "composer"]

    def test_unknown_first_token(self):
        with pytest.raises(ValueError) as exc_info:
            parse_manager_args(["pip", "install"], self.AVAILABLE)

        assert "Unsupported manager: pip" in str(exc_info.value)


class TestBuildParser:
    def test_install_arguments(self):
        args = build_parser().parse_args(
            ["install", "--force-refresh", "--cache-dir", "/c", "npm", "--production"]
        )

        assert args.command == "install"
        assert args.force_refresh is True
        assert args.cache_dir == "/c"
        assert args.managers == ["npm", "--production"]

    def test_serve_defaults(self):
        args = build_parser().parse_args(["serve"])

        assert args.host == "127.0.0.1"
        assert args.port == 8000

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestDefaultCacheDir:
    def test_environment_variable(self, monkeypatch):
        monkeypatch.setenv(CACHE_DIR_ENV, "/tmp/deps-cache")

        assert default_cache_dir() == "/tmp/deps-cache"

    def test_home_fallback(self, monkeypatch):
        monkeypatch.delenv(CACHE_DIR_ENV, raising=False)

        assert default_cache_dir() == str(Path.home() / ".package_cache")


class TestMain:
    def test_managers_lists_descriptors(self, capsys):
        assert main(["managers"]) == 0

        assert "npm\t" in capsys.readouterr().out

    def test_clean(self, tmp_path, capsys):
        archive = tmp_path / "npm" / "8.1.0" / "abc.tar.gz"
        archive.parent.mkdir(parents=True)
        archive.write_bytes(b"x")

        assert main(["clean", "--cache-dir", str(tmp_path)]) == 0

        assert not archive.exists()
        assert "Removed 1 cached archive(s)" in capsys.readouterr().out

    def test_install_unknown_manager(self, tmp_path, capsys):
        status = main(["install", "--cache-dir", str(tmp_path), "--cwd", str(tmp_path), "pip"])

        assert status == 2
        assert "Unsupported manager: pip" in capsys.readouterr().err

    @patch('main.LoadDependencies.load_all', new_callable=AsyncMock)
    def test_install_success(self, mock_load_all, tmp_path):
        mock_load_all.return_value = [CacheOutcome(manager="npm", status=LoadStatus.RESTORED)]

        status = main(["install", "--cache-dir", str(tmp_path / "cache"), "--cwd", str(tmp_path),
                       "npm", "--production"])

        assert status == 0
        configs = mock_load_all.call_args[0][0]
        assert [c.cli_name for c in configs] == ["npm"]
        assert configs[0].install_options == "--production"
        assert configs[0].work_dir == tmp_path
        assert configs[0].cache_directory == tmp_path / "cache"

    @patch('main.LoadDependencies.load_all', new_callable=AsyncMock)
    def test_install_failure_exit_status(self, mock_load_all, tmp_path):
        mock_load_all.return_value = [
            CacheOutcome(manager="npm", status=LoadStatus.INSTALLED),
            CacheOutcome(manager="bower", status=LoadStatus.FAILED, error=InstallError("bower install", 1)),
        ]

        status = main(["install", "--cache-dir", str(tmp_path), "--cwd", str(tmp_path)])

        assert status == 1

    def test_hash_skips_missing_manifests(self, tmp_path, capsys):
        status = main(["hash", "--cache-dir", str(tmp_path), "--cwd", str(tmp_path)])

        assert status == 0
        assert capsys.readouterr().out == ""

    @patch('infrastructure.cli_tools.CliTools.query_version', return_value="8.1.0")
    def test_hash_prints_key(self, mock_version, tmp_path, capsys):
        (tmp_path / "package.json").write_bytes(b'{"dependencies": {}}')

        status = main(["hash", "--cache-dir", str(tmp_path / "cache"), "--cwd", str(tmp_path), "npm"])

        out = capsys.readouterr().out
        assert status == 0
        assert out.startswith("npm 8.1.0 ")
        assert str(tmp_path / "cache" / "npm" / "8.1.0") in out
        assert "(not cached)" in out
