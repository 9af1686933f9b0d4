"""
git_task.py

Публикация сайта в рабочую копию git-репозитория.

Основной сценарий (строго последовательно, без повторов, первая ошибка прерывает работу):
1) Убедиться, что каталог сборки совпадает с рабочей копией и в ней есть .git.
2) Определить текущую ветку по выводу `git branch`.
3) `git add --all` - включая удаления.
4) `git commit -m <сообщение>`; `{now}` в шаблоне заменяется временем старта процесса.
5) `git push --force origin <ветка>`.

Откат уже выполненных шагов не производится.
"""

from datetime import datetime
from pathlib import Path
from typing import Callable

from loguru import logger

from DEPLOY_APP.ADAPTERS.git_cli import GitCli
from DEPLOY_APP.APP.dto import GitOption, RunContext
from DEPLOY_APP.APP.ports import GitRunner
from GENERAL.errors import ConfigError, RepositoryStateError

SCHEME = "git://"
NOW_TOKEN = "{now}"

# Время старта процесса: все коммиты одного запуска получают одинаковую метку.
PROCESS_STARTED_AT = datetime.now().astimezone()

GitRunnerFactory = Callable[[Path], GitRunner]


def render_message(template: str) -> str:
    """Подставляет время старта процесса (RFC 3339) вместо `{now}`."""
    return template.replace(NOW_TOKEN, PROCESS_STARTED_AT.isoformat(timespec="seconds"))


def parse_current_branch(branches: str) -> str | None:
    """Возвращает ветку, отмеченную `*` в выводе `git branch`.

    Отсоединённый HEAD (`* (HEAD detached at ...)`) веткой не считается.
    """
    for line in branches.splitlines():
        if not line.startswith("*"):
            continue
        current = line[1:].strip()
        if not current or current.startswith("("):
            return None
        return current.split()[-1]
    return None


class GitTask:
    """Способ публикации `git://<каталог репозитория>`.

    Ветка не настраивается: публикуется та ветка, которая сейчас выбрана в рабочей копии.
    """

    def __init__(
        self,
        option: GitOption,
        runner_factory: GitRunnerFactory = GitCli,
    ) -> None:
        self.option = option
        self.runner_factory = runner_factory

    @classmethod
    def from_conf(
        cls,
        conf: str,
        *,
        message: str | None = None,
        runner_factory: GitRunnerFactory = GitCli,
    ) -> "GitTask":
        """Разбирает строку `git://<каталог>`.

        Raises
        ------
        ConfigError
            Каталог после схемы не указан.
        """
        directory = conf.removeprefix(SCHEME)
        if not directory:
            raise ConfigError(
                "git: строка публикации должна иметь вид git://<каталог репозитория>"
            )
        option = (
            GitOption(directory=directory)
            if message is None
            else GitOption(directory=directory, message=message)
        )
        return cls(option, runner_factory=runner_factory)

    @property
    def name(self) -> str:
        return "git"

    @property
    def directory(self) -> str:
        return self.option.directory

    def do(self, ctx: RunContext) -> None:
        """Фиксирует и публикует все изменения рабочей копии из строки `git://<каталог>`.

        Каталог сборки (ctx.destination_dir) должен совпадать с этой рабочей копией.

        Raises
        ------
        ConfigError
            Каталог сборки не совпадает с каталогом репозитория.
        RepositoryStateError
            Каталог не является репозиторием или текущая ветка не определяется.
        GitCommandError
            Любая команда git завершилась с ошибкой.
        """
        dest = Path(self.directory)
        if dest.resolve() != ctx.destination_dir.resolve():
            raise ConfigError(
                f"git: каталог сборки {ctx.destination_dir} не совпадает "
                f"с каталогом репозитория {dest}"
            )
        if not (dest / ".git").is_dir():
            raise RepositoryStateError(f"Каталог {dest} не является git-репозиторием")

        git = self.runner_factory(dest)

        branch = parse_current_branch(git.list_branches())
        if branch is None:
            raise RepositoryStateError(
                f"Не удалось определить текущую ветку репозитория {dest}"
            )

        git.stage_all()
        logger.debug("Deploy.Git.[{}].AddFiles", branch)

        message = render_message(self.option.message)
        git.commit(message)
        logger.debug("Deploy.Git.[{}].Commit.{!r}", branch, message)

        git.force_push(branch)
        logger.debug("Deploy.Git.[{}].Push", branch)
