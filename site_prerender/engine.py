# File: site_prerender/engine.py
"""site_prerender.engine: загрузка конфига, выбор рендерера и запуск пререндера."""

from __future__ import annotations

import asyncio
from typing import Any, Optional

from site_prerender.config import PrerenderConfig, import_string, load_config
from site_prerender.crawler.crawler import prerender
from site_prerender.crawler.models import Manifest
from site_prerender.errors import RendererNotConfiguredError
from site_prerender.logger import logger
from site_prerender.renderer import HttpRenderer, Renderer

__all__ = ["Engine", "start_prerender"]


def _instantiate(target: Any) -> Renderer:
    """Класс или фабрика без аргументов → экземпляр; готовый объект возвращается как есть."""
    if hasattr(target, "render") and not isinstance(target, type):
        return target
    return target()


async def start_prerender(config: PrerenderConfig, renderer: Optional[Renderer] = None) -> Manifest:
    """
    Запускает пререндер и возвращает Manifest.

    Если рендерер не передан явно, он берётся из ``config.renderer`` (строка
    ``module:attr``), иначе из ``config.app_url`` (HttpRenderer).
    """
    if renderer is not None:
        return await prerender(config, renderer)
    if config.renderer:
        return await prerender(config, _instantiate(import_string(config.renderer)))
    if config.app_url is not None:
        async with HttpRenderer(str(config.app_url), timeout=config.fetch_timeout) as http:
            return await prerender(config, http)
    raise RendererNotConfiguredError("Не задан ни 'renderer', ни 'app_url' в конфигурации")


class Engine:
    """Фасад для CLI и тестов: загрузка конфига и синхронный запуск пререндера."""

    @staticmethod
    def load_config(path: Optional[str]) -> PrerenderConfig:
        """Загружает конфиг из YAML/JSON."""
        return load_config(path)

    def __init__(self, config: PrerenderConfig, renderer: Optional[Renderer] = None) -> None:
        self.config = config
        self.renderer = renderer

    def start(self) -> Manifest:
        """Запускает пререндер в новом цикле событий и возвращает Manifest."""
        logger.info("Starting prerender…")
        try:
            return asyncio.run(start_prerender(self.config, self.renderer))
        except Exception as exc:
            logger.error("Prerender failed: %s", exc)
            raise
