"""
Конфигурация приложения публикации и загрузка настроек из YAML.

Содержит основную модель настроек (DeployConfig). Логирование и служебные файлы
описаны в общей части (GENERAL.config.CommonConfig).
"""

from pathlib import Path

from pydantic import (
    NonNegativeFloat,
    PositiveFloat,
    PositiveInt,
    field_validator,
)
from pydantic_settings import SettingsConfigDict

from GENERAL.config import CommonConfig


class DeployConfig(CommonConfig):
    """
    Конфигурация публикации сайта.

    Загружается при старте и используется как источник настроек.

    Примечание:
        target - строка вида git://<каталог> или sftp://<user>:<password>@<host>[:port][/path];
        может быть перекрыта параметром командной строки --target.
    """

    # fmt: off
    # Куда и что публикуем
    target                          : str
    build_dir                       : Path

    # git
    message                         : str                           = "Site Updated at {now}"

    # sftp
    connect_timeout_sec             : PositiveFloat | None          = None
    strict_host_keys                : bool                          = False
    upload_blocksize                : PositiveInt                   = 32 * 1024
    mtime_tolerance_sec             : NonNegativeFloat              = 1.0
    # fmt: on

    @field_validator("target")
    @classmethod
    def _target_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("target не может быть пустым")
        return value

    model_config = SettingsConfigDict(
        # Запрещаем неизвестные ключи в YAML.
        extra="forbid",
    )
