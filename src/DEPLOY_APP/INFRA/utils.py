"""
Утилиты для безопасных операций с файловой системой и работы с путями.

Модуль содержит:
- fs_call(): единая обёртка над файловыми операциями для нормализации исключений.
- ancestor_dirs(): список каталогов-предков пути (от внешнего к внутреннему).
- walk_files(): отсортированный рекурсивный обход файлов каталога.
"""

from pathlib import Path, PurePosixPath
from typing import TypeVar, Callable, Iterator

from GENERAL.errors import LocalIOError

T = TypeVar("T")

# Каталоги служебных данных систем контроля версий в публикацию не попадают.
SKIP_DIRS = frozenset({".git"})


def fs_call(path: Path, action: str, fn: Callable[[], T]) -> T:
    """Выполняет файловую операцию `fn()` и преобразует ошибки ОС в LocalIOError.

    Args:
        path: Путь, для которого выполняется действие (используется в тексте ошибок).
        action: Короткое описание операции (например, "чтение", "открытие").
        fn: Функция без аргументов, выполняющая реальную операцию.

    Returns:
        Результат `fn()`.

    Raises:
        LocalIOError: При PermissionError или любом OSError.
    """
    try:
        return fn()
    except LocalIOError:
        raise
    except PermissionError as e:
        raise LocalIOError(f"Нет доступа к {path}") from e
    except OSError as e:
        raise LocalIOError(
            f"Ошибка файловой системы при {action} для {path}:\n{e}"
        ) from e


def ancestor_dirs(path: str) -> list[str]:
    """Возвращает сам каталог `path` и всех его предков, начиная с самого внешнего.

    Примеры:
        - ``"a/b/c"`` → ``["a", "a/b", "a/b/c"]``
        - ``"/var/www"`` → ``["/var", "/var/www"]``
        - ``""``, ``"."``, ``"/"`` → ``[]``
    """
    p = PurePosixPath(path)
    if str(p) in (".", "/"):
        return []

    parents = [str(x) for x in reversed(p.parents) if str(x) not in (".", "/")]
    return parents + [str(p)]


def walk_files(root: Path) -> Iterator[Path]:
    """Рекурсивно перечисляет файлы каталога `root` в лексикографическом порядке.

    Каталоги из SKIP_DIRS и символические ссылки на каталоги пропускаются вместе
    с содержимым.
    """
    entries = fs_call(root, "чтение каталога", lambda: sorted(root.iterdir()))
    for entry in entries:
        if entry.is_dir():
            if entry.name in SKIP_DIRS or entry.is_symlink():
                continue
            yield from walk_files(entry)
        elif entry.is_file():
            yield entry
