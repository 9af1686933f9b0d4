"""Контроллер публикации сайта (оркестратор приложения).

Модуль содержит `DeployController` - тонкий слой оркестрации, который связывает порты/сервисы
приложения: хранилище состояния, поставщика изменений и выбранную задачу публикации.

Контроллер почти не содержит бизнес-логики:
- принимает зависимости через конструктор,
- вызывает их в фиксированном порядке,
- сохраняет новое состояние только после успешной публикации.

Доменные исключения сервисов не подавляются: их обрабатывает точка входа (main.py).
"""

from pathlib import Path

from loguru import logger

from DEPLOY_APP.APP.dto import BuildDiffInput, DeployState, RunContext
from DEPLOY_APP.APP.ports import DeployTask, DiffSupplier, StateStore
from DEPLOY_APP.APP.types import Behavior


class DeployController:
    """Оркестратор одной попытки публикации.

    Атрибуты:
        build_dir: каталог со сгенерированным сайтом.
        task: выбранная задача публикации (git или sftp).
        diff_supplier: строит RunContext по каталогу сборки и прежнему состоянию.
        state_store: читает/записывает состояние последней успешной публикации.
        full: игнорировать сохранённое состояние (полная выгрузка).
    """

    def __init__(
        self,
        build_dir: Path,
        task: DeployTask,
        diff_supplier: DiffSupplier,
        state_store: StateStore,
        full: bool = False,
    ) -> None:
        self.build_dir = build_dir
        self.task = task
        self.diff_supplier = diff_supplier
        self.state_store = state_store
        self.full = full

    def run(self) -> int:
        """Выполняет публикацию и возвращает код завершения (0 - успех).

        Общая последовательность:
        1) Прочитать состояние последней успешной публикации (если не задан --full).
        2) Построить RunContext (diff + build_count).
        3) Выполнить задачу публикации.
        4) Сохранить новое состояние.
        """
        previous = None if self.full else self.state_store.load()

        ctx = self.diff_supplier.run(
            BuildDiffInput(build_dir=self.build_dir, previous=previous)
        )

        logger.info(
            "Публикация {} → {} (сборка №{})",
            self.build_dir,
            self.task.name,
            ctx.build_count,
        )
        self.task.do(ctx)

        self.state_store.save(
            DeployState(build_count=ctx.build_count, files=self._deployed_files(ctx))
        )
        logger.info("Публикация завершена успешно")
        return 0

    @staticmethod
    def _deployed_files(ctx: RunContext) -> list[str]:
        """Относительные пути, присутствующие на цели после публикации."""
        return [
            ctx.relative(path)
            for path, entry in ctx.diff
            if entry.behavior is not Behavior.REMOVE
        ]
