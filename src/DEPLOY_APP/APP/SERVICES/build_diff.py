"""
build_diff.py

Поставщик изменений для командной строки: сравнивает каталог сборки с манифестом
последней успешной публикации и строит RunContext.

Правила:
- файл есть в сборке и в манифесте - KEEP;
- файл есть только в сборке - ADD;
- файл есть только в манифесте - REMOVE (только если прежнему состоянию можно доверять,
  т.е. build_count >= 2).

Записи упорядочены лексикографически по относительному posix-пути.
"""

from datetime import datetime, timezone

from loguru import logger

from DEPLOY_APP.APP.dto import BuildDiffInput, Diff, DiffEntry, RunContext
from DEPLOY_APP.APP.types import Behavior
from DEPLOY_APP.INFRA.utils import fs_call, walk_files
from GENERAL.errors import ConfigError


class BuildDiffService:
    """Строит Diff по содержимому каталога сборки и предыдущему состоянию."""

    def run(self, data: BuildDiffInput) -> RunContext:
        """
        Raises:
            ConfigError: каталог сборки не существует.
            LocalIOError: не читается содержимое каталога или атрибуты файла.
        """
        build_dir = data.build_dir
        if not build_dir.is_dir():
            raise ConfigError(f"Каталог сборки {build_dir} не найден")

        previous = data.previous
        build_count = previous.build_count + 1 if previous is not None else 1
        known = set(previous.files) if previous is not None and build_count >= 2 else set()

        current = {path.relative_to(build_dir).as_posix(): path for path in walk_files(build_dir)}
        removed_at = datetime.now(timezone.utc)

        diff = Diff()
        for rel in sorted(current.keys() | known):
            path = current.get(rel)
            if path is None:
                diff.add(build_dir / rel, DiffEntry(Behavior.REMOVE, removed_at))
                continue

            st_mtime = fs_call(path, "чтении атрибутов", lambda: path.stat().st_mtime)
            behavior = Behavior.KEEP if rel in known else Behavior.ADD
            diff.add(
                path,
                DiffEntry(behavior, datetime.fromtimestamp(st_mtime, tz=timezone.utc)),
            )

        logger.info(
            "Сборка №{}: {} файлов, изменений к обработке: {}",
            build_count,
            len(current),
            len(diff),
        )
        return RunContext(destination_dir=build_dir, build_count=build_count, diff=diff)
