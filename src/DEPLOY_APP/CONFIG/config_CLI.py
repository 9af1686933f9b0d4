from pathlib import Path

import argparse

from GENERAL.errors import ConfigError


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="deploy-site", exit_on_error=False)
    p.add_argument(
        "config",
        type=Path,
        help="Путь к файлу конфигурации (обязательный)",
    )
    p.add_argument(
        "--target",
        default=None,
        help="Адрес публикации git://... или sftp://... (перекрывает target из конфигурации)",
    )
    p.add_argument(
        "--full",
        action="store_true",
        help="Игнорировать сохранённое состояние и выгрузить сайт целиком",
    )
    try:
        return p.parse_args(argv)
    except argparse.ArgumentError as e:
        raise ConfigError(f"Ошибка параметров запуска:\n{e}") from None
