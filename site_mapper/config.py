"""
Модуль для загрузки и валидации конфигурации генератора карты сайта SiteMapper.
Используется Pydantic для описания схемы и проверки данных.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union
from urllib.parse import urlparse
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    field_validator,
    model_validator,
)


class SitemapConfig(BaseModel):
    """Конфигурация для одного запуска обхода сайта."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    base_url: HttpUrl = Field(..., description="Корневой URL сайта.")
    max_depth: int = Field(25, ge=0, description="Максимальная глубина обхода ссылок.")
    max_queue_size: int = Field(1000, ge=1, description="Сколько URL может попасть в очередь за весь обход.")
    allowed_hosts: List[str] = Field(
        default_factory=list, description="Разрешённые хосты (по умолчанию хост base_url)."
    )
    allow_subdomains: bool = Field(False, description="Разрешать поддомены allowed_hosts.")
    timeout: float = Field(10.0, gt=0, description="Таймаут на один запрос (секунд).")
    crawl_timeout: Optional[float] = Field(None, gt=0, description="Таймаут всего обхода (секунд).")
    user_agent: str = Field("SiteMapperBot/1.0", min_length=1, description="Заголовок User-Agent.")
    rate_limit: float = Field(5.0, gt=0, description="Лимит запросов в секунду.")
    concurrency: int = Field(4, ge=1, description="Число одновременных запросов.")
    robots_url: Optional[HttpUrl] = Field(None, description="URL robots.txt (по умолчанию <base_url>/robots.txt).")
    output_path: Path = Field(Path("public/sitemap.xml"), description="Куда записать sitemap.xml.")
    timezone: Optional[str] = Field(None, description="IANA-зона для lastmod без смещения.")

    @field_validator("allowed_hosts", mode="before")
    def _lower_hosts(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = [v]
        if isinstance(v, list):
            return [str(h).strip().lower() for h in v if str(h).strip()]
        return v

    @field_validator("timezone")
    def _check_timezone(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Неизвестная временная зона: {v}") from exc
        return v

    @model_validator(mode="after")
    def _check_base_url_host(self) -> SitemapConfig:
        if not self.base_url.host:
            raise ValueError("base_url должен содержать хост")
        return self

    @property
    def root_url(self) -> str:
        return str(self.base_url)

    @property
    def hosts(self) -> List[str]:
        """Хосты, внутри которых разрешён обход."""
        if self.allowed_hosts:
            return list(self.allowed_hosts)
        return [urlparse(self.root_url).netloc.lower()]

    @property
    def robots_txt_url(self) -> str:
        if self.robots_url is not None:
            return str(self.robots_url)
        parsed = urlparse(self.root_url)
        return f"{parsed.scheme}://{parsed.netloc}/robots.txt"

    @property
    def zone(self) -> Optional[ZoneInfo]:
        return ZoneInfo(self.timezone) if self.timezone else None


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


def _read_file(path_obj: Path) -> dict[str, Any]:
    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return _read_yaml(path_obj)
    if suffix == ".json":
        return _read_json(path_obj)
    raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")


def load_config(
    path: Union[str, Path, None],
    overrides: Optional[Mapping[str, Any]] = None,
) -> SitemapConfig:
    """
    Читает YAML или JSON, накладывает overrides (значения None пропускаются)
    и возвращает проверенный объект SitemapConfig.

    Без path используется configs/default.yaml, если он существует.
    Явно указанный, но отсутствующий файл: FileNotFoundError.
    """
    data: Dict[str, Any] = {}
    if path is None:
        if _DEFAULT_CFG.is_file():
            data = _read_file(_DEFAULT_CFG)
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))
        data = _read_file(path_obj)

    for key, value in (overrides or {}).items():
        if value is not None:
            data[key] = value

    return SitemapConfig(**data)
