# === FILE: site_prerender/config.py ===
"""
Модуль для загрузки и валидации конфигурации SitePrerender.
Используется Pydantic для описания схемы и проверки данных.
"""
from __future__ import annotations

import errno
import importlib
import json
import os
from pathlib import Path
from typing import Any, Callable, List, Literal, Optional, Set, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    ValidationError,
    field_validator,
    model_validator,
)

ErrorHandlerT = Callable[..., None]


def import_string(target: str) -> Any:
    """``"package.module:attr"`` → объект ``attr`` из модуля."""
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Ожидается строка вида 'module:attr', получено {target!r}")
    module = importlib.import_module(module_name)
    obj: Any = module
    for part in attr.split("."):
        obj = getattr(obj, part)
    return obj


class ClientBuild(BaseModel):
    chunks: List[str] = Field(default_factory=list)
    assets: List[str] = Field(default_factory=list)


class BuildData(BaseModel):
    """Известные файлы сборки: статика, клиентские чанки и ассеты, маршруты-точки входа."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    static: List[str] = Field(default_factory=list)
    client: ClientBuild = Field(default_factory=ClientBuild)
    entries: List[str] = Field(default_factory=list)

    def files(self, app_dir: str) -> Set[str]:
        """Реальные файлы сборки (пути относительно корня сайта)."""
        return {
            *self.static,
            *(f"{app_dir}/{name}" for name in self.client.chunks),
            *(f"{app_dir}/{name}" for name in self.client.assets),
        }

    def known_paths(self, app_dir: str) -> Set[str]:
        """Файлы сборки плюс каталоги, у которых есть ``<dir>/index.html``."""
        known = self.files(app_dir)
        for file in self.static:
            if file.endswith("/index.html"):
                known.add(file[: -len("/index.html")])
        return known


class PrerenderConfig(BaseModel):
    """Конфигурация одного запуска пререндера."""

    model_config = ConfigDict(extra="forbid", frozen=True, arbitrary_types_allowed=True)

    out_dir: Path = Field(Path("build"), description="Каталог для результатов.")
    assets_dir: Optional[Path] = Field(None, description="Каталог статических файлов.")
    build_data: Optional[Path] = Field(None, description="JSON с описанием сборки (BuildData).")
    base_path: str = Field("", description="Базовый путь сайта, '' или '/docs'.")
    app_dir: str = Field("_app", min_length=1, description="Каталог клиентских файлов сборки.")
    trailing_slash: Literal["never", "always", "ignore"] = Field("never")
    enabled: bool = Field(True, description="Выполнять ли обход точек входа.")
    crawl: bool = Field(True, description="Переходить ли по ссылкам из HTML.")
    concurrency: int = Field(1, ge=1, description="Число одновременных рендеров.")
    entries: List[str] = Field(default_factory=lambda: ["*"])
    on_error: Union[Literal["continue", "fail"], ErrorHandlerT] = Field("fail")
    fallback: Optional[str] = Field(None, description="Файл SPA-фолбэка, например '200.html'.")
    all: bool = Field(False, description="Рендерить все маршруты независимо от их настроек.")
    renderer: Optional[str] = Field(None, description="Рендерер в виде 'module:attr'.")
    app_url: Optional[HttpUrl] = Field(None, description="URL запущенного приложения.")
    fetch_timeout: float = Field(30.0, gt=0, description="Таймаут HTTP-запросов (секунд).")

    @field_validator("base_path")
    def _check_base_path(cls, v: str) -> str:
        if v and (not v.startswith("/") or v.endswith("/")):
            raise ValueError("base_path должен быть '' или начинаться с '/' и не заканчиваться '/'")
        return v

    @field_validator("entries")
    def _check_entries(cls, v: List[str]) -> List[str]:
        for entry in v:
            if entry != "*" and not entry.startswith("/"):
                raise ValueError(f"Точка входа должна быть '*' или начинаться с '/': {entry!r}")
        return v

    @field_validator("on_error", mode="before")
    def _import_error_handler(cls, v: Any) -> Any:
        if isinstance(v, str) and v not in ("continue", "fail"):
            try:
                return import_string(v)
            except (ImportError, AttributeError) as exc:
                raise ValueError(f"Не удалось импортировать обработчик {v!r}: {exc}") from exc
        return v

    @model_validator(mode="after")
    def _check_build_data_exists(self) -> PrerenderConfig:
        if self.build_data is not None and not self.build_data.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(self.build_data))
        return self

    def load_build_data(self) -> BuildData:
        if self.build_data is None:
            return BuildData()
        return BuildData.model_validate(_read_json(self.build_data))

    def summary(self) -> dict[str, Any]:
        """JSON-совместимое представление (обработчик ошибок по имени)."""
        data = self.model_dump(mode="json", exclude={"on_error"})
        on_error = self.on_error
        data["on_error"] = on_error if isinstance(on_error, str) else getattr(
            on_error, "__qualname__", repr(on_error)
        )
        return data


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None]) -> PrerenderConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект PrerenderConfig.
    Относительные пути в конфиге считаются от каталога файла конфигурации.
    При отсутствии файла конфига бросает FileNotFoundError.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(_DEFAULT_CFG))
        path_obj = _DEFAULT_CFG.resolve()
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")

    for key in ("out_dir", "assets_dir", "build_data"):
        value = data.get(key)
        if isinstance(value, str) and not Path(value).expanduser().is_absolute():
            data[key] = str(path_obj.parent / value)

    try:
        return PrerenderConfig(**data)
    except ValidationError:
        raise


__all__ = ["PrerenderConfig", "BuildData", "ClientBuild", "load_config", "import_string"]
