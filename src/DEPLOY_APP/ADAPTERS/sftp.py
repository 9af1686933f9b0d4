"""sftp.py

Обёртка над paramiko (SSH + SFTP) для:
- подключения с аутентификацией по паролю;
- создания/удаления удалённых путей;
- чтения времени изменения удалённого файла;
- потоковой выгрузки локального файла с перезаписью.

Ключевая идея: все SFTP-команды выполняются через _sftp_call(), который переводит
ошибки paramiko/ОС в доменное исключение RemoteIOError. Повторов нет - ошибка
сразу уходит вызывающему коду.
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Callable, Iterator, TypeVar

import paramiko
from loguru import logger

from DEPLOY_APP.APP.dto import SftpOption
from DEPLOY_APP.INFRA.utils import fs_call
from GENERAL.errors import RemoteIOError, TransportError

DEFAULT_BLOCKSIZE = 32 * 1024

T = TypeVar("T")


class Sftp:
    """SFTP-сессия поверх одного SSH-соединения.

    Атрибуты:
        option: разобранные параметры подключения.
        ssh: SSH-клиент paramiko (None до connect() и после close()).
        sftp: SFTP-клиент paramiko поверх ssh.
    """

    def __init__(
        self,
        option: SftpOption,
        *,
        timeout: float | None = None,
        blocksize: int = DEFAULT_BLOCKSIZE,
        strict_host_keys: bool = False,
        client_factory: Callable[[], paramiko.SSHClient] = paramiko.SSHClient,
    ) -> None:
        self.option = option
        self.timeout = timeout
        self.blocksize = blocksize
        self.strict_host_keys = strict_host_keys
        self._client_factory = client_factory
        self.ssh: paramiko.SSHClient | None = None
        self.sftp: paramiko.SFTPClient | None = None

    # ---------------------------
    # connect / close
    # ---------------------------

    def connect(self) -> None:
        """Открывает SSH-соединение и SFTP-сессию поверх него.

        Raises
        ------
        TransportError
            Ошибка сети, рукопожатия SSH, проверки ключа хоста или аутентификации.
        """
        opt = self.option
        client = self._client_factory()
        client.load_system_host_keys()
        policy = (
            paramiko.RejectPolicy() if self.strict_host_keys else paramiko.AutoAddPolicy()
        )
        client.set_missing_host_key_policy(policy)

        try:
            client.connect(
                hostname=opt.host,
                port=opt.port,
                username=opt.user,
                password=opt.password,
                timeout=self.timeout,
                allow_agent=False,
                look_for_keys=False,
            )
            sftp = client.open_sftp()
        except paramiko.AuthenticationException as e:
            client.close()
            raise TransportError(
                f"Неверные учётные данные для {opt.user!r} на {opt.address!r}:\n{e}"
            ) from e
        except (paramiko.SSHException, OSError) as e:
            client.close()
            raise TransportError(
                f"Не удалось подключиться к SFTP серверу {opt.address!r}:\n{e}"
            ) from e

        self.ssh = client
        self.sftp = sftp
        logger.debug("Deploy.[{}].Connected", opt.address)

    def close(self) -> None:
        """Закрывает SFTP-сессию и SSH-соединение. Повторный вызов безопасен."""
        for name, resource in (("sftp", self.sftp), ("ssh", self.ssh)):
            if resource is None:
                continue
            try:
                resource.close()
            except Exception as e:
                logger.debug("Ошибка при закрытии {}: {}", name, e)
        self.sftp = None
        self.ssh = None

    @property
    def _client(self) -> paramiko.SFTPClient:
        if self.sftp is None:
            raise RuntimeError("Sftp: сессия не открыта, сначала вызовите connect()")
        return self.sftp

    # -------------------------
    # --- _sftp_call()
    # -------------------------

    def _sftp_call(self, action: Callable[[], T], *, what: str) -> T:
        """Единая обёртка для SFTP-вызовов: перевод ошибок в RemoteIOError.

        Текст ошибки сервера (если он есть) сохраняется в сообщении.
        """
        try:
            return action()
        except (OSError, paramiko.SSHException) as e:
            raise RemoteIOError(f"Ошибка при {what}:\n{e}") from e

    # ---------------------------
    # remote operations
    # ---------------------------

    def mkdir(self, path: str) -> None:
        self._sftp_call(
            lambda: self._client.mkdir(path),
            what=f"создании каталога {path!r}",
        )

    def remove(self, path: str) -> None:
        """Удаляет файл; отсутствие файла ошибкой не считается (повторный запуск сходится)."""
        try:
            self._client.remove(path)
        except FileNotFoundError:
            logger.debug("Файл {!r} уже отсутствует на сервере", path)
        except (OSError, paramiko.SSHException) as e:
            raise RemoteIOError(f"Ошибка при удалении файла {path!r}:\n{e}") from e

    def mtime(self, path: str) -> datetime | None:
        """Время изменения удалённого файла или None, если файла нет."""
        try:
            attrs = self._client.stat(path)
        except FileNotFoundError:
            return None
        except (OSError, paramiko.SSHException) as e:
            raise RemoteIOError(f"Ошибка при чтении атрибутов {path!r}:\n{e}") from e

        if attrs.st_mtime is None:
            return None
        return datetime.fromtimestamp(attrs.st_mtime, tz=timezone.utc)

    def upload(self, local_path: Path, remote_path: str) -> None:
        """Потоково копирует локальный файл в remote_path, перезаписывая его.

        Raises
        ------
        LocalIOError
            Локальный файл не открывается или не читается.
        RemoteIOError
            Удалённый файл не создаётся, не пишется или не закрывается.
        """
        src: BinaryIO = fs_call(local_path, "открытии", lambda: open(local_path, "rb"))
        with src:
            dst = self._sftp_call(
                lambda: self._client.open(remote_path, "wb"),
                what=f"создании файла {remote_path!r}",
            )
            try:
                written = self._copy_stream(src, dst, local_path, remote_path)
            except Exception:
                self._close_quietly(dst, remote_path)
                raise
            self._sftp_call(dst.close, what=f"закрытии файла {remote_path!r}")

        logger.trace("{!r}: записано {} байт", remote_path, written)

    def _copy_stream(
        self,
        src: BinaryIO,
        dst: paramiko.SFTPFile,
        local_path: Path,
        remote_path: str,
    ) -> int:
        """Копирует src в dst блоками blocksize и возвращает число записанных байт."""
        dst.set_pipelined(True)
        written = 0
        while True:
            chunk = fs_call(local_path, "чтении", lambda: src.read(self.blocksize))
            if not chunk:
                return written
            self._sftp_call(
                lambda: dst.write(chunk),
                what=f"записи в файл {remote_path!r}",
            )
            written += len(chunk)

    def _close_quietly(self, dst: paramiko.SFTPFile, remote_path: str) -> None:
        try:
            dst.close()
        except (OSError, paramiko.SSHException) as e:
            logger.debug("Ошибка при закрытии {!r} после сбоя записи: {}", remote_path, e)

    def __enter__(self) -> "Sftp":
        self.connect()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


@contextmanager
def open_sftp_session(
    option: SftpOption,
    *,
    timeout: float | None = None,
    blocksize: int = DEFAULT_BLOCKSIZE,
    strict_host_keys: bool = False,
) -> Iterator[Sftp]:
    """Открывает SFTP-сессию на время блока with и гарантированно закрывает её."""
    with Sftp(
        option,
        timeout=timeout,
        blocksize=blocksize,
        strict_host_keys=strict_host_keys,
    ) as session:
        yield session
