"""Тесты для CLI (`cli.py`) с использованием click.testing.CliRunner.
Проверяют команды `build`, `config`, `--version`, а также обработку ошибок.
"""
import importlib
import json

import pytest
from click.testing import CliRunner

from site_prerender.cli import cli
from site_prerender.crawler.models import AssetEntry, Manifest, PageEntry
from site_prerender.logger import init_logging

# site_prerender re-exports the click group as `cli`, which shadows the submodule
# attribute, so the module is taken from the import system
cli_module = importlib.import_module("site_prerender.cli")


@pytest.fixture(autouse=True)
def patch_start_prerender(monkeypatch):
    """Патчим start_prerender: возвращаем готовый манифест без рендера."""
    seen = []
    manifest = Manifest()
    manifest.add("/", PageEntry("index.html"), "/")
    manifest.add("/api/data.json", AssetEntry("application/json"), "/api/data.json")

    async def fake_prerender(cfg):
        seen.append(cfg)
        return manifest

    monkeypatch.setattr(cli_module, "start_prerender", fake_prerender)
    return seen


@pytest.fixture(autouse=True)
def restore_logging():
    """CliRunner подменяет stdout: после теста возвращаем обработчик на настоящий поток."""
    yield
    init_logging()


@pytest.fixture()
def cfg_file(tmp_path):
    path = tmp_path / "prerender.yaml"
    path.write_text("out_dir: dist\nentries: ['/']\napp_url: http://localhost:3000\n", encoding="utf-8")
    return path


def test_version_option():
    runner = CliRunner()
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "SitePrerender" in result.output


def test_show_config(cfg_file, tmp_path):
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "config"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["out_dir"] == str(cfg_file.resolve().parent / "dist")
    assert data["entries"] == ["/"]


def test_invalid_config_exits_with_error(tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("concurrency: 0\n", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(bad), "config"])
    assert result.exit_code == 1
    assert "Ошибка загрузки конфигурации" in result.output


def test_build_stdout(cfg_file, patch_start_prerender):
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "build"])
    assert result.exit_code == 0
    # первая строка информационная, дальше JSON манифеста
    _, _, payload = result.output.partition("\n")
    data = json.loads(payload)
    assert data["pages"] == {"/": {"file": "index.html"}}
    assert data["paths"] == ["/", "/api/data.json"]
    assert len(patch_start_prerender) == 1


def test_build_overrides(cfg_file, tmp_path, patch_start_prerender):
    out = tmp_path / "other"
    runner = CliRunner()
    result = runner.invoke(
        cli, ["--config", str(cfg_file), "build", "--out", str(out), "--concurrency", "8"]
    )
    assert result.exit_code == 0
    [cfg] = patch_start_prerender
    assert cfg.out_dir == out
    assert cfg.concurrency == 8


def test_build_json_file(cfg_file, tmp_path):
    out = tmp_path / "manifest.json"
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "build", "--json", str(out), "--pretty"])
    assert result.exit_code == 0
    assert "JSON report:" in result.output
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["assets"] == {"/api/data.json": {"type": "application/json"}}


def test_build_html_file(cfg_file, tmp_path):
    out = tmp_path / "report.html"
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "build", "--html", str(out)])
    assert result.exit_code == 0
    assert out.exists()
    assert "/api/data.json" in out.read_text(encoding="utf-8")


def test_build_failure_is_reported(cfg_file, monkeypatch):
    async def broken(cfg):
        raise RuntimeError("renderer crashed")

    monkeypatch.setattr(cli_module, "start_prerender", broken)
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "build"])
    assert result.exit_code == 1
    assert "renderer crashed" in result.output


def test_cli_module_is_the_submodule(patch_start_prerender):
    assert cli_module.__name__ == "site_prerender.cli"
    assert cli_module.start_prerender.__name__ == "fake_prerender"
