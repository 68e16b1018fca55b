# site_prerender/report/json_report.py

"""
Генерация JSON-отчёта для проекта SitePrerender.

Сериализация объекта Manifest в строку или файл.
"""
import json
from pathlib import Path

from site_prerender.crawler.models import Manifest


def manifest_json(manifest: Manifest, *, pretty: bool = False) -> str:
    """Manifest → JSON-строка (страницы, ассеты, редиректы и порядок путей)."""
    return json.dumps(manifest.to_dict(), ensure_ascii=False, indent=2 if pretty else None)


def render_json(manifest: Manifest, output_path: Path | str, *, pretty: bool = True) -> Path:
    """
    Сохраняет manifest в формате JSON по указанному пути.

    :param manifest: объект Manifest, возвращённый пререндером
    :param output_path: путь к JSON-файлу
    :param pretty: форматировать с отступом 2
    :return: Path сохранённого файла

    Пример:
    ```python
    from site_prerender.report.json_report import render_json
    report_path = render_json(manifest, 'reports/manifest.json')
    print(f"JSON report saved to: {report_path}")
    ```
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(manifest_json(manifest, pretty=pretty), encoding="utf-8")
    return output
