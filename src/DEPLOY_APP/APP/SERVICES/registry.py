"""Выбор способа публикации по строке конфигурации.

Набор способов закрыт (git, sftp): схема строки (`git://`, `sftp://`) однозначно
определяет BackendKind, а `match` по нему проверяется на полноту через assert_never.
"""

from typing import Any, TypeAlias, assert_never

from DEPLOY_APP.APP.SERVICES.git_task import GitTask
from DEPLOY_APP.APP.SERVICES.sftp_task import SftpTask
from DEPLOY_APP.APP.types import BackendKind
from GENERAL.errors import ConfigError

Backend: TypeAlias = GitTask | SftpTask

SCHEME_SEPARATOR = "://"

# fmt: off
SCHEMES: dict[str, BackendKind] = {
    "git"   : BackendKind.GIT,
    "sftp"  : BackendKind.SFTP,
}
# fmt: on


def backend_kind(conf: str) -> BackendKind:
    """Определяет способ публикации по схеме строки конфигурации.

    Raises
    ------
    ConfigError
        Схема отсутствует или неизвестна.
    """
    scheme, sep, _ = conf.partition(SCHEME_SEPARATOR)
    kind = SCHEMES.get(scheme) if sep else None
    if kind is None:
        raise ConfigError(
            f"Неизвестный адрес публикации: {conf!r}. "
            f"Поддерживаются: {', '.join(s + SCHEME_SEPARATOR for s in SCHEMES)}"
        )
    return kind


def select(conf: str, **options: Any) -> Backend:
    """Создаёт задачу публикации для строки конфигурации.

    options - необязательные настройки, которые передаются выбранной задаче:
    для git - `message`, для sftp - `timeout`, `blocksize`, `strict_host_keys`,
    `mtime_tolerance`. Настройки другого способа игнорируются.

    Raises
    ------
    ConfigError
        Неизвестная схема или строка не соответствует формату выбранного способа.
    """
    kind = backend_kind(conf)
    match kind:
        case BackendKind.GIT:
            return GitTask.from_conf(conf, **_pick(options, "message", "runner_factory"))
        case BackendKind.SFTP:
            return SftpTask.from_conf(
                conf,
                **_pick(
                    options,
                    "session_factory",
                    "timeout",
                    "blocksize",
                    "strict_host_keys",
                    "mtime_tolerance",
                ),
            )
        case _:
            assert_never(kind)


def _pick(options: dict[str, Any], *names: str) -> dict[str, Any]:
    return {name: options[name] for name in names if options.get(name) is not None}
