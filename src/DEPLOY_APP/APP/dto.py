"""DTO и доменные типы приложения публикации сайта (DEPLOY_APP).

В модуле собраны:
- запись об изменении пути (`DiffEntry`) и упорядоченный набор таких записей (`Diff`),
- контекст одной попытки публикации (`RunContext`),
- разобранные параметры способов публикации (`GitOption`, `SftpOption`),
- снимок состояния предыдущей публикации (`DeployState`) и входные структуры сервисов.

Важно:
- Все структуры создаются заново на каждую попытку публикации и не изменяются после
  создания. Исключение - `Diff`, который наполняет поставщик изменений до того, как
  передать его в `RunContext`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Iterator, TypeAlias

from DEPLOY_APP.APP.types import Behavior

# fmt: off
@dataclass(frozen=True)
class DiffEntry:
    """Изменение одного пути относительно предыдущей сборки.

    Attributes
    ----------
    behavior
        ADD - новый путь, KEEP - путь есть в обеих сборках, REMOVE - путь удалён.
    mod_time
        Время изменения локального файла.
    """
    behavior            : Behavior
    mod_time            : datetime


DiffVisitor: TypeAlias = Callable[[Path, DiffEntry], None]


class Diff:
    """Упорядоченный набор пар (путь, DiffEntry).

    Порядок обхода совпадает с порядком добавления (его определяет поставщик изменений,
    обычно - лексикографический порядок путей).
    """

    def __init__(self, entries: Iterable[tuple[Path | str, DiffEntry]] = ()) -> None:
        self._entries: list[tuple[Path, DiffEntry]] = []
        for path, entry in entries:
            self.add(path, entry)

    def add(self, path: Path | str, entry: DiffEntry) -> None:
        self._entries.append((Path(path), entry))

    def walk(self, visitor: DiffVisitor) -> None:
        """Вызывает visitor для каждой записи по порядку.

        Первое исключение, поднятое visitor, прекращает обход и пробрасывается
        вызывающему коду без изменений.
        """
        for path, entry in self._entries:
            visitor(path, entry)

    def __iter__(self) -> Iterator[tuple[Path, DiffEntry]]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({len(self._entries)} записей)"


@dataclass(frozen=True)
class RunContext:
    """Контекст одной попытки публикации.

    Attributes
    ----------
    destination_dir
        Каталог со сгенерированным сайтом (для git - рабочая копия репозитория).
    build_count
        Число завершённых сборок; при build_count < 2 прежнему состоянию не доверяем.
    diff
        Изменения путей относительно предыдущей сборки.
    """
    destination_dir     : Path
    build_count         : int
    diff                : Diff

    def __post_init__(self) -> None:
        if self.build_count < 0:
            raise ValueError(f"build_count не может быть отрицательным: {self.build_count}")

    def relative(self, path: Path) -> str:
        """Путь записи относительно destination_dir в posix-виде."""
        if not path.is_absolute():
            return path.as_posix()
        return path.relative_to(self.destination_dir).as_posix()

    def local_path(self, path: Path) -> Path:
        """Полный локальный путь файла записи."""
        return path if path.is_absolute() else self.destination_dir / path


@dataclass(frozen=True)
class GitOption:
    """Параметры публикации в git-репозиторий.

    Ветка не настраивается: берётся текущая ветка рабочей копии.
    """
    directory           : str
    message             : str = "Site Updated at {now}"


@dataclass(frozen=True)
class SftpOption:
    """Параметры публикации по SFTP.

    Attributes
    ----------
    address
        host[:port] - как записан в строке конфигурации.
    directory
        Корень сайта на сервере; относительный путь - относительно домашнего каталога.
    """
    address             : str
    host                : str
    port                : int
    user                : str
    password            : str = field(repr=False)
    directory           : str


@dataclass(frozen=True)
class DeployState:
    """Состояние после последней успешной публикации."""
    build_count         : int
    files               : list[str]


@dataclass(frozen=True)
class BuildDiffInput:
    """Входные данные поставщика изменений для CLI."""
    build_dir           : Path
    previous            : DeployState | None
# fmt: on
