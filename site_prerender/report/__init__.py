# File: site_prerender/report/__init__.py
"""site_prerender.report: отчёты о пререндере (JSON и HTML), используемые CLI и тестами."""

from __future__ import annotations

from site_prerender.report.html_report import render_html
from site_prerender.report.json_report import manifest_json, render_json

__all__ = ["render_json", "render_html", "manifest_json"]
