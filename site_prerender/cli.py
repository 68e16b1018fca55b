# === FILE: site_prerender/cli.py ===
#!/usr/bin/env python3
"""
Точка входа для запуска SitePrerender через командную строку.

Команды:
  build     Выполнить пререндер по конфигу и вывести/сохранить манифест
  config    Показать текущую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stdout, если не указан)
  --log-format FORMAT Формат логирования

Команда build опции:
  --out DIR           Каталог для результатов (override out_dir)
  --renderer TARGET   Рендерер 'module:attr' (override renderer)
  --app-url URL       URL запущенного приложения (override app_url)
  --concurrency INT   Число одновременных рендеров (override concurrency)
  --json PATH         Сохранить манифест в JSON-файл
  --html PATH         Сохранить HTML-отчёт в файл
  --template DIR      Папка со своим шаблоном report.html.j2
  --pretty            Преформатировать JSON-вывод (отступ 2)

Дополнительно:
  --version, -v       Показать версию SitePrerender

Пример:
  python -m site_prerender.cli --config prerender.yaml build --json manifest.json --pretty
"""
import asyncio
import json
import sys
from pathlib import Path

import click
from pydantic import ValidationError

from site_prerender import __version__
from site_prerender.config import load_config
from site_prerender.engine import start_prerender
from site_prerender.logger import init_logging
from site_prerender.report.html_report import render_html
from site_prerender.report.json_report import manifest_json, render_json

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg="red", err=True)
    sys.exit(1)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, "--version", "-v", message="SitePrerender, version %(version)s")
@click.option(
    "--config", "-c", "config_path",
    default="configs/default.yaml",
    show_default=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Путь к файлу конфигурации YAML/JSON.",
)
@click.option(
    "--log-level", "log_level",
    default="INFO", show_default=True,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Уровень логирования",
)
@click.option(
    "--log-file", "log_file",
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help="Путь к файлу логов (stdout, если не указан)",
)
@click.option(
    "--log-format", "log_format",
    default="%(asctime)s %(levelname)s %(message)s",
    show_default=True,
    help="Строка формата для логов",
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """Группа команд SitePrerender CLI."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format,
    )
    try:
        cfg = load_config(config_path)
    except (OSError, ValueError, TypeError, ValidationError) as e:
        print_error(f"Ошибка загрузки конфигурации: {e}")
    ctx.ensure_object(dict)
    ctx.obj["config"] = cfg


@cli.command("build", context_settings=CONTEXT_SETTINGS)
@click.option(
    "--out", "-o", "out_dir",
    default=None,
    type=click.Path(file_okay=False, path_type=Path),
    help="Каталог для результатов (override out_dir)",
)
@click.option("--renderer", "-r", "renderer", default=None, help="Рендерер 'module:attr'")
@click.option("--app-url", "app_url", default=None, help="URL запущенного приложения")
@click.option(
    "--concurrency", "concurrency",
    type=click.IntRange(min=1),
    default=None,
    help="Число одновременных рендеров",
)
@click.option(
    "--json", "-j", "json_output",
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help="Сохранить манифест в JSON-файл",
)
@click.option(
    "--html", "-h", "html_output",
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help="Сохранить HTML-отчёт в файл",
)
@click.option(
    "--template", "-t", "template_dir",
    default=None,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Папка со своим шаблоном report.html.j2",
)
@click.option("--pretty", is_flag=True, help="Преформатировать JSON-вывод (отступ 2)")
@click.pass_context
def build(ctx, out_dir, renderer, app_url, concurrency, json_output, html_output, template_dir, pretty):
    """Выполнить пререндер и сохранить манифест."""
    cfg = ctx.obj["config"]
    overrides = {
        key: value
        for key, value in (
            ("out_dir", out_dir),
            ("renderer", renderer),
            ("app_url", app_url),
            ("concurrency", concurrency),
        )
        if value is not None
    }
    if overrides:
        try:
            cfg = cfg.model_validate({**cfg.model_dump(), **overrides})
        except ValidationError as e:
            print_error(f"Ошибка в параметрах: {e}")

    click.echo(f"Prerendering into: {cfg.out_dir}")
    try:
        manifest = asyncio.run(start_prerender(cfg))
    except Exception as e:
        print_error(f"Ошибка при пререндере: {e}")

    # Если не сохраняем в файл, печатаем в stdout
    if not json_output and not html_output:
        click.echo(manifest_json(manifest, pretty=pretty))
        return

    if json_output:
        try:
            saved_json = render_json(manifest, json_output, pretty=pretty)
            click.echo(f"JSON report: {saved_json}")
        except OSError as e:
            print_error(f"Ошибка при сохранении JSON: {e}")

    if html_output:
        try:
            saved_html = render_html(manifest, html_output, template_dir)
            click.echo(f"HTML report: {saved_html}")
        except Exception as e:
            print_error(f"Ошибка при сохранении HTML: {e}")


@cli.command("config", context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = ctx.obj["config"]
    click.echo(json.dumps(cfg.summary(), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    cli()
