"""git_cli.py

Обёртка над консольным git для публикации сайта.

Каждая операция - отдельный процесс `git ...`, запущенный в рабочей копии.
Повторов нет: первая неудачная команда поднимает GitCommandError. Сообщением ошибки
становится текст git из stderr, а если он пуст - из stdout.
"""

import subprocess
from pathlib import Path

from loguru import logger

from GENERAL.errors import GitCommandError

GIT = "git"


class GitCli:
    """Реализация порта GitRunner через subprocess.

    Атрибуты:
        work_dir: рабочая копия репозитория, в которой запускаются команды.
    """

    def __init__(self, work_dir: Path) -> None:
        self.work_dir = work_dir

    def _git(self, *args: str) -> str:
        """Запускает `git <args>` в work_dir и возвращает stdout.

        Raises
        ------
        GitCommandError
            Если git не найден или завершился с ненулевым кодом.
        """
        command = [GIT, *args]
        logger.debug("git: {}", " ".join(command))

        try:
            result = subprocess.run(
                command,
                cwd=self.work_dir,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            raise GitCommandError(
                f"Не удалось запустить {' '.join(command)!r} в {self.work_dir}:\n{e}"
            ) from e

        if result.returncode != 0:
            # "nothing to commit" git пишет в stdout, а не в stderr
            details = result.stderr.strip() or result.stdout.strip()
            logger.error("Deploy.Git.Error: {}", details)
            if details:
                raise GitCommandError(details)
            raise GitCommandError(
                f"Команда {' '.join(command)!r} завершилась с кодом {result.returncode}"
            )

        return result.stdout

    def list_branches(self) -> str:
        return self._git("branch")

    def stage_all(self) -> None:
        self._git("add", "--all")

    def commit(self, message: str) -> None:
        self._git("commit", "-m", message)

    def force_push(self, branch: str) -> None:
        self._git("push", "--force", "origin", branch)
