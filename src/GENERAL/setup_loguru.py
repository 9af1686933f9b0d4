"""setup_loguru.py

Настройка логирования через Loguru.

Функция: func:`setup_loguru` сбрасывает ранее зарегистрированные sinks Loguru и
регистрирует:

- вывод в stderr (консоль);
- вывод в файл согласно настройкам class:`LoggingConfig`.

Если файловый sink зарегистрировать не удалось (например, нет прав, путь некорректен),
сообщение пишется в уже настроенный консольный лог, и программа продолжает работу.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, cast

from loguru import logger

from GENERAL.config import LoggingConfig


def _ensure_parent_dir_for_file_sink(path_like: Any) -> None:
    """Гарантирует существование директории для файлового sink.

    Работает только для путей файловой системы (str/Path). Для прочих типов
    (например, file-like объектов) ничего не делает.

    Args:
        path_like: Путь к файлу лога (или иной объект, поддерживаемый loguru).
    """
    if isinstance(path_like, (str, Path)):
        path = Path(path_like)
        path.parent.mkdir(parents=True, exist_ok=True)


def setup_loguru(config: LoggingConfig) -> None:
    """Инициализирует Loguru на основе настроек приложения.

    Поведение:
        1) Удаляет все ранее добавленные sinks (`logger.remove()`), чтобы повторный
           вызов не дублировал вывод.
        2) Добавляет sink в `sys.stderr` с параметрами из `config.console`.
        3) Пытается добавить файловый sink из `config.file`.

    Args:
        config: Раздел `logging` конфигурации приложения.
    """
    logger.remove()

    # fmt: off
    logger.add(
        sys.stderr,
        level               =config.console.level,
        format              =config.console.format,
        colorize            =True,
    )
    # fmt: on

    file_path = cast(Path, config.file.path)

    try:
        _ensure_parent_dir_for_file_sink(file_path)

        # fmt: off
        logger.add(
            file_path,
            level               =config.file.level,
            format              =config.file.format,
            rotation            =config.file.rotation,
            retention           =config.file.retention,
            compression         =config.file.compression,
            encoding            ="utf-8",
        )
        # fmt: on

    except (OSError, ValueError, TypeError) as e:
        # Консольный sink уже включён, поэтому пишем именно в лог.
        logger.critical(
            "Не удалось зарегистрировать файл логирования: {path!r}\n{e}",
            path=file_path,
            e=e,
        )
