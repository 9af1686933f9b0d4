from platformdirs import user_log_dir
from pathlib import Path
from typing import cast, Self

from pydantic_settings import SettingsConfigDict
from pydantic import (
    model_validator,
    Field,
    BaseModel,
)

APP_NAME = "SiteDeploy"
APP_AUTHOR = "SiteDeploy"


def default_log_dir() -> Path:
    """Системная пользовательская директория логов приложения (создаётся при необходимости)."""
    log_dir = Path(user_log_dir(appname=APP_NAME, appauthor=APP_AUTHOR))
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


# ----------------------------
# Logging config (loguru)
# ----------------------------


class ConsoleLoggingConfig(BaseModel):
    """
    Настройки логирования в консоль (loguru).

    Attributes:
        level: Уровень логирования (например, "INFO", "DEBUG").
        format: Формат сообщения для loguru (разметка/плейсхолдеры loguru).
    """

    level: str = "INFO"
    format: str = "<green>{time:HH:mm:ss}</green> | <level>{level}</level> | {message}"


class FileLoggingConfig(BaseModel):
    """
    Настройки логирования в файл (loguru).

    Attributes:
        level: Уровень логирования для файла.
        path: Путь к файлу лога (относительный или абсолютный).
        name: Имя файла лога в системной директории логов (если path не задан).
        rotation: Правило ротации (например, "1 MB", "1 day" и т.п по правилам loguru).
        format: Формат записи в файл.
        retention: Политика хранения старых логов.
        compression: Сжатие архивов логов.
    """

    level: str = "DEBUG"
    path: Path | None = None
    name: str | None = "deploy.log"
    rotation: str = "1 MB"
    format: str = (
        "{time:YYYY-MM-DD HH:mm:ss} | {level:<8} | "
        "{file.path}{function}:{line} - {message}"
    )
    retention: str = "7 days"
    compression: str = "zip"

    @model_validator(mode="after")
    def _finalize(self) -> Self:
        if self.path is None and self.name is None:
            raise ValueError("Для файла журнализации не задан ни path, ни name")

        if self.path is None:
            self.path = default_log_dir() / cast(str, self.name)

        return self


class LoggingConfig(BaseModel):
    """
    Группа настроек логирования.

    Attributes:
        console: Настройки консольного логирования.
        file: Настройки файлового логирования.
    """

    console: ConsoleLoggingConfig = Field(default_factory=ConsoleLoggingConfig)
    file: FileLoggingConfig = Field(default_factory=FileLoggingConfig)

    model_config = SettingsConfigDict(
        # Запрещаем неизвестные ключи в YAML.
        extra="forbid",
    )


class CommonConfig(BaseModel):
    """
    Общая часть конфигурации приложений: логирование и служебные файлы.

    Примечание:
        state_file может не задаваться в YAML - в этом случае он размещается
        рядом с файлом лога (см валидатор _derive_service_files()).
    """

    # fmt: off
    # Служебные файлы
    state_file                      : Path | None                   = None

    # Logging
    logging: LoggingConfig          = Field(default_factory=LoggingConfig)
    # fmt: on

    @model_validator(mode="after")
    def _derive_service_files(self) -> Self:
        """
        Если state_file не задан - размещаем его в директории логов.
        """
        if self.state_file is None:
            log_path = cast(Path, self.logging.file.path)
            self.state_file = log_path.parent / "deploy_state.yaml"
        return self

    @property
    def state_file_path(self) -> Path:
        """
        Гарантированно возвращает путь state_file как Path.

        Предполагается, что к моменту обращения _derive_service_files() уже установил
        state_file, если он не был задан явно.
        """
        return cast(Path, self.state_file)
