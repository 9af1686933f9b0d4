"""Порты приложения: узкие интерфейсы, которые сервисы получают извне.

Тесты подменяют их простыми фейками.
"""

from datetime import datetime
from pathlib import Path
from typing import ContextManager, Protocol

from DEPLOY_APP.APP.dto import (
    RunContext,
    DeployState,
    BuildDiffInput,
    SftpOption,
)


# ---------- deploy task ----------
class DeployTask(Protocol):
    @property
    def name(self) -> str: ...

    def do(self, ctx: RunContext) -> None: ...


# ---------- git ----------
class GitRunner(Protocol):
    def list_branches(self) -> str: ...
    def stage_all(self) -> None: ...
    def commit(self, message: str) -> None: ...
    def force_push(self, branch: str) -> None: ...


# ---------- sftp ----------
class RemoteSession(Protocol):
    def mkdir(self, path: str) -> None: ...
    def remove(self, path: str) -> None: ...
    def mtime(self, path: str) -> datetime | None: ...
    def upload(self, local_path: Path, remote_path: str) -> None: ...


class SessionFactory(Protocol):
    def __call__(self, option: SftpOption) -> ContextManager[RemoteSession]: ...


# ---------- build diff / state ----------
class DiffSupplier(Protocol):
    def run(self, data: BuildDiffInput) -> RunContext: ...


class StateStore(Protocol):
    def load(self) -> DeployState | None: ...
    def save(self, state: DeployState) -> None: ...
