from __future__ import annotations

import sys
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

import pytest

# Включает src в path
REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = REPO_ROOT / "src"

if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))


@pytest.fixture()
def make_yaml(tmp_path: Path):
    """Helper быстрого создания YAML файла во временной директории."""

    def _make(name: str, text: str) -> Path:
        p = tmp_path / name
        p.write_text(text, encoding="utf-8")
        return p

    return _make


class FakeSession:
    """Удалённая SFTP-сессия в памяти: записывает все операции по порядку.

    mtimes - время изменения уже существующих на "сервере" файлов.
    fail_upload - пути, запись в которые завершается RemoteIOError.
    """

    def __init__(self, mtimes=None, fail_upload=()):
        from GENERAL.errors import RemoteIOError

        self._error = RemoteIOError
        self.calls: list[tuple[str, str]] = []
        self.mtimes: dict[str, datetime] = dict(mtimes or {})
        self.dirs: set[str] = set()
        self.files: dict[str, bytes] = {}
        self.fail_upload = set(fail_upload)

    def mkdir(self, path: str) -> None:
        self.calls.append(("mkdir", path))
        if path in self.dirs:
            raise self._error(f"Failure: {path}")
        self.dirs.add(path)

    def remove(self, path: str) -> None:
        self.calls.append(("remove", path))
        self.files.pop(path, None)

    def mtime(self, path: str):
        self.calls.append(("stat", path))
        return self.mtimes.get(path)

    def upload(self, local_path: Path, remote_path: str) -> None:
        self.calls.append(("upload", remote_path))
        if remote_path in self.fail_upload:
            raise self._error(f"Permission denied: {remote_path}")
        self.files[remote_path] = local_path.read_bytes()

    def ops(self, kind: str) -> list[str]:
        return [path for op, path in self.calls if op == kind]


class SessionRecorder:
    """Фабрика сессий для SftpTask: отдаёт одну FakeSession и считает открытия/закрытия."""

    def __init__(self, session: FakeSession):
        self.session = session
        self.options = []
        self.opened = 0
        self.closed = 0

    @contextmanager
    def __call__(self, option):
        self.options.append(option)
        self.opened += 1
        try:
            yield self.session
        finally:
            self.closed += 1


@pytest.fixture()
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture()
def session_recorder(fake_session: FakeSession) -> SessionRecorder:
    return SessionRecorder(fake_session)


@pytest.fixture()
def site(tmp_path: Path) -> Path:
    """Каталог сборки с несколькими файлами."""
    root = tmp_path / "public"
    files = {
        "index.html": "<h1>home</h1>",
        "css/a.css": "a{}",
        "css/b.css": "b{}",
        "blog/2020/post.html": "<p>post</p>",
    }
    for rel, text in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    return root
