"""
sftp_task.py

Публикация сайта на удалённый сервер по SFTP.

Основной сценарий:
1) Открыть одну SSH/SFTP-сессию (закрывается при любом исходе).
2) Подготовить корневой каталог сайта на сервере: создать всех предков, ошибки игнорировать.
3) build_count < 2 - полное воспроизведение всех записей Diff;
   иначе - разностное: KEEP-файлы, которые на сервере не старше локальных, пропускаются.

Записи обрабатываются строго в порядке обхода Diff. Первая ошибка чтения локального файла
или записи на сервер прерывает обход; уже обработанные пути остаются на сервере.
"""

import posixpath
from functools import partial
from pathlib import Path
from typing import assert_never
from urllib.parse import urlsplit

from loguru import logger

from DEPLOY_APP.ADAPTERS.sftp import DEFAULT_BLOCKSIZE, open_sftp_session
from DEPLOY_APP.APP.dto import DiffEntry, RunContext, SftpOption
from DEPLOY_APP.APP.ports import RemoteSession, SessionFactory
from DEPLOY_APP.APP.types import Behavior, ReplayMode
from DEPLOY_APP.INFRA.utils import ancestor_dirs
from GENERAL.errors import ConfigError, LocalIOError, RemoteIOError

SCHEME = "sftp://"
DEFAULT_PORT = 22
HOME_MARKER = "/~"

# Разрешение времени изменения файлов на большинстве серверов - целые секунды.
DEFAULT_MTIME_TOLERANCE_SEC = 1.0


def parse_sftp_conf(conf: str) -> SftpOption:
    """Разбирает строку `sftp://<user>:<password>@<host>[:port][/path]`.

    Путь, начинающийся с `/~`, считается относительным домашнего каталога пользователя.

    Raises
    ------
    ConfigError
        Нет разделителя `@` или `:` в учётных данных, либо адрес не разбирается.
    """
    conf_data = conf.removeprefix(SCHEME).split("@")
    if len(conf_data) != 2:
        raise ConfigError(
            "sftp: строка публикации должна иметь вид "
            "sftp://<user>:<password>@<host>[:port][/path]"
        )

    user_data = conf_data[0].split(":")
    if len(user_data) != 2:
        raise ConfigError("sftp: учётные данные должны иметь вид <user>:<password>")
    user, password = user_data

    url = urlsplit("ssh://" + conf_data[1])
    try:
        port = url.port or DEFAULT_PORT
    except ValueError as e:
        raise ConfigError(f"sftp: некорректный порт в адресе {conf_data[1]!r}") from e
    if not url.hostname:
        raise ConfigError(f"sftp: не указан сервер в адресе {conf_data[1]!r}")

    path = url.path
    if path == HOME_MARKER or path.startswith(HOME_MARKER + "/"):
        directory = path.removeprefix(HOME_MARKER).lstrip("/")
    else:
        directory = path

    return SftpOption(
        address=url.netloc,
        host=url.hostname,
        port=port,
        user=user,
        password=password,
        directory=directory,
    )


def replay_mode(build_count: int) -> ReplayMode:
    """При build_count < 2 прежнему состоянию сервера не доверяем."""
    return ReplayMode.FULL if build_count < 2 else ReplayMode.DIFF


class SftpTask:
    """Способ публикации `sftp://...`.

    Атрибуты:
        option: разобранные параметры подключения.
        session_factory: открывает сессию как контекстный менеджер (в тестах - фейк).
        mtime_tolerance: разница времени изменения меньше этого порога считается равенством.
    """

    def __init__(
        self,
        option: SftpOption,
        session_factory: SessionFactory = open_sftp_session,
        mtime_tolerance: float = DEFAULT_MTIME_TOLERANCE_SEC,
    ) -> None:
        self.option = option
        self.session_factory = session_factory
        self.mtime_tolerance = mtime_tolerance

    @classmethod
    def from_conf(
        cls,
        conf: str,
        *,
        session_factory: SessionFactory | None = None,
        timeout: float | None = None,
        blocksize: int = DEFAULT_BLOCKSIZE,
        strict_host_keys: bool = False,
        mtime_tolerance: float = DEFAULT_MTIME_TOLERANCE_SEC,
    ) -> "SftpTask":
        option = parse_sftp_conf(conf)
        if session_factory is None:
            session_factory = partial(
                open_sftp_session,
                timeout=timeout,
                blocksize=blocksize,
                strict_host_keys=strict_host_keys,
            )
        return cls(option, session_factory, mtime_tolerance)

    @property
    def name(self) -> str:
        return "sftp"

    def do(self, ctx: RunContext) -> None:
        """Воспроизводит изменения ctx.diff на сервере.

        Raises
        ------
        TransportError
            Не удалось открыть сессию.
        LocalIOError
            Не читается локальный файл.
        RemoteIOError
            Ошибка создания/записи/удаления файла на сервере.
        """
        address = self.option.address
        with self.session_factory(self.option) as session:
            self._prime(session)

            mode = replay_mode(ctx.build_count)
            match mode:
                case ReplayMode.FULL:
                    logger.info("Deploy.[{}].UploadAll", address)
                    self._replay_full(session, ctx)
                case ReplayMode.DIFF:
                    logger.info("Deploy.[{}].UploadDiff", address)
                    self._replay_diff(session, ctx)
                case _:
                    assert_never(mode)

    # ---------------------------
    # replay
    # ---------------------------

    def _replay_full(self, session: RemoteSession, ctx: RunContext) -> None:
        """Выгружает все записи; каждый каталог создаётся не более одного раза за запуск."""
        created_dirs: set[str] = set()

        def visit(path: Path, entry: DiffEntry) -> None:
            rel = self._relative(ctx, path)
            if entry.behavior is Behavior.REMOVE:
                logger.warning(
                    "Удаление {!r} при полной выгрузке: прежнего состояния быть не должно",
                    rel,
                )
                self._delete(session, rel)
                return

            self._ensure_dirs(session, posixpath.dirname(rel), created_dirs)
            self._store(session, ctx.local_path(path), rel)

        ctx.diff.walk(visit)

    def _replay_diff(self, session: RemoteSession, ctx: RunContext) -> None:
        """Выгружает только новые и изменившиеся файлы, удаляет исчезнувшие."""

        def visit(path: Path, entry: DiffEntry) -> None:
            rel = self._relative(ctx, path)
            if entry.behavior is Behavior.REMOVE:
                self._delete(session, rel)
                return

            if entry.behavior is Behavior.KEEP and self._is_current(session, rel, entry):
                logger.debug("Deploy.Sftp.Skip {}", rel)
                return

            self._ensure_dirs(session, posixpath.dirname(rel), None)
            self._store(session, ctx.local_path(path), rel)

        ctx.diff.walk(visit)

    # ---------------------------
    # helpers
    # ---------------------------

    def _remote(self, rel: str) -> str:
        return posixpath.join(self.option.directory, rel)

    def _relative(self, ctx: RunContext, path: Path) -> str:
        try:
            return ctx.relative(path)
        except ValueError as e:
            raise LocalIOError(
                f"Файл {path} находится вне каталога сборки {ctx.destination_dir}"
            ) from e

    def _prime(self, session: RemoteSession) -> None:
        """Создаёт корневой каталог сайта и его предков; ошибки игнорируются."""
        for directory in ancestor_dirs(self.option.directory):
            self._try_mkdir(session, directory)

    def _ensure_dirs(
        self, session: RemoteSession, rel_dir: str, created_dirs: set[str] | None
    ) -> None:
        """Создаёт каталоги-предки относительного пути, начиная с внешнего.

        created_dirs - память уже созданных каталогов текущего запуска (None - без памяти).
        """
        for directory in ancestor_dirs(rel_dir):
            if created_dirs is not None:
                if directory in created_dirs:
                    continue
                created_dirs.add(directory)
            self._try_mkdir(session, self._remote(directory))

    def _try_mkdir(self, session: RemoteSession, path: str) -> None:
        # SFTP v3 не отличает "уже существует" от прочих отказов: считаем каталог созданным.
        try:
            session.mkdir(path)
        except RemoteIOError as e:
            logger.debug("Каталог {!r} не создан (вероятно, уже существует): {}", path, e)

    def _is_current(self, session: RemoteSession, rel: str, entry: DiffEntry) -> bool:
        """True, если файл на сервере есть и локальная копия не новее его."""
        remote_time = session.mtime(self._remote(rel))
        if remote_time is None:
            return False

        delta = entry.mod_time.timestamp() - remote_time.timestamp()
        is_newer = delta > 0 and delta >= self.mtime_tolerance
        return not is_newer

    def _delete(self, session: RemoteSession, rel: str) -> None:
        session.remove(self._remote(rel))
        logger.debug("Deploy.Sftp.Delete {}", rel)

    def _store(self, session: RemoteSession, local_path: Path, rel: str) -> None:
        session.upload(local_path, self._remote(rel))
        logger.debug("Deploy.Sftp.Stor {}", rel)
