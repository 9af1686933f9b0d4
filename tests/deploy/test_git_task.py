"""Тесты публикации через git (DEPLOY_APP.APP.SERVICES.git_task, ADAPTERS.git_cli)."""

import shutil
import subprocess
from pathlib import Path
from types import SimpleNamespace

import pytest

from DEPLOY_APP.ADAPTERS import git_cli
from DEPLOY_APP.ADAPTERS.git_cli import GitCli
from DEPLOY_APP.APP.dto import Diff, GitOption, RunContext
from DEPLOY_APP.APP.SERVICES.git_task import (
    PROCESS_STARTED_AT,
    GitTask,
    parse_current_branch,
    render_message,
)
from GENERAL.errors import ConfigError, GitCommandError, RepositoryStateError


class FakeGit:
    """GitRunner в памяти: записывает вызовы, может упасть на заданной команде."""

    def __init__(self, branches: str = "  gh-pages\n* main\n", fail_on: str | None = None):
        self.branches = branches
        self.fail_on = fail_on
        self.calls: list[tuple] = []

    def _record(self, *call) -> None:
        self.calls.append(call)
        if call[0] == self.fail_on:
            raise GitCommandError(f"fatal: {call[0]} failed")

    def list_branches(self) -> str:
        self._record("branch")
        return self.branches

    def stage_all(self) -> None:
        self._record("add")

    def commit(self, message: str) -> None:
        self._record("commit", message)

    def force_push(self, branch: str) -> None:
        self._record("push", branch)


@pytest.fixture()
def repo(tmp_path: Path) -> Path:
    root = tmp_path / "repo"
    (root / ".git").mkdir(parents=True)
    return root


def make_ctx(root: Path) -> RunContext:
    return RunContext(destination_dir=root, build_count=1, diff=Diff())


def make_task(
    fake: FakeGit, directory: Path, message: str = "Site Updated at {now}"
) -> tuple[GitTask, list]:
    created: list[Path] = []

    def factory(work_dir: Path) -> FakeGit:
        created.append(work_dir)
        return fake

    option = GitOption(directory=str(directory), message=message)
    return GitTask(option, runner_factory=factory), created


# ---------------------------
# parse
# ---------------------------


@pytest.mark.parametrize(
    "output, expected",
    [
        ("* main\n", "main"),
        ("  dev\n* gh-pages\n  main\n", "gh-pages"),
        ("  dev\n  main\n", None),
        ("", None),
        ("* (HEAD detached at 1a2b3c4)\n  main\n", None),
    ],
)
def test_parse_current_branch(output, expected):
    assert parse_current_branch(output) == expected


def test_from_conf_takes_directory_after_scheme():
    task = GitTask.from_conf("git://../site-repo")
    assert task.directory == "../site-repo"
    assert task.option.message == "Site Updated at {now}"
    assert task.name == "git"


def test_from_conf_custom_message():
    task = GitTask.from_conf("git:///srv/site", message="deploy {now}")
    assert task.directory == "/srv/site"
    assert task.option.message == "deploy {now}"


def test_from_conf_without_directory():
    with pytest.raises(ConfigError) as e:
        GitTask.from_conf("git://")
    assert "git" in str(e.value)


def test_render_message_uses_process_start_time():
    stamp = PROCESS_STARTED_AT.isoformat(timespec="seconds")
    assert render_message("at {now}") == f"at {stamp}"
    assert render_message("no token") == "no token"


# ---------------------------
# do
# ---------------------------


def test_commands_run_in_order(repo):
    fake = FakeGit()
    task, created = make_task(fake, repo, message="Deploy {now}")

    task.do(make_ctx(repo))

    stamp = PROCESS_STARTED_AT.isoformat(timespec="seconds")
    assert created == [repo]
    assert fake.calls == [
        ("branch",),
        ("add",),
        ("commit", f"Deploy {stamp}"),
        ("push", "main"),
    ]


def test_build_dir_outside_repository_is_config_error(tmp_path, repo):
    """Каталог сборки - другая рабочая копия: публиковать её нельзя."""
    other = tmp_path / "public"
    (other / ".git").mkdir(parents=True)
    fake = FakeGit()
    task = GitTask.from_conf(f"git://{repo}", runner_factory=lambda d: fake)

    with pytest.raises(ConfigError) as e:
        task.do(make_ctx(other))

    assert str(repo) in str(e.value)
    assert fake.calls == []


def test_relative_repository_path_matches_absolute_build_dir(monkeypatch, tmp_path, repo):
    monkeypatch.chdir(tmp_path)
    fake = FakeGit()
    task, created = make_task(fake, Path("repo"))

    task.do(make_ctx(repo))

    assert created == [Path("repo")]
    assert fake.calls[-1] == ("push", "main")


def test_missing_git_dir_fails_before_any_command(tmp_path):
    fake = FakeGit()
    task, created = make_task(fake, tmp_path)

    with pytest.raises(RepositoryStateError):
        task.do(make_ctx(tmp_path))

    assert created == []
    assert fake.calls == []


def test_git_file_instead_of_dir_is_not_a_repository(tmp_path):
    (tmp_path / ".git").write_text("gitdir: elsewhere", encoding="utf-8")
    task, created = make_task(FakeGit(), tmp_path)

    with pytest.raises(RepositoryStateError):
        task.do(make_ctx(tmp_path))
    assert created == []


@pytest.mark.parametrize("branches", ["  main\n", "* (no branch)\n"])
def test_undetectable_branch_stops_before_staging(repo, branches):
    fake = FakeGit(branches=branches)
    task, _ = make_task(fake, repo)

    with pytest.raises(RepositoryStateError):
        task.do(make_ctx(repo))

    assert fake.calls == [("branch",)]


def test_failed_commit_stops_before_push(repo):
    fake = FakeGit(fail_on="commit")
    task, _ = make_task(fake, repo)

    with pytest.raises(GitCommandError):
        task.do(make_ctx(repo))

    assert [call[0] for call in fake.calls] == ["branch", "add", "commit"]


def test_two_runs_share_commit_message(repo):
    fake = FakeGit()
    task, _ = make_task(fake, repo)

    task.do(make_ctx(repo))
    task.do(make_ctx(repo))

    messages = [call[1] for call in fake.calls if call[0] == "commit"]
    assert len(messages) == 2
    assert messages[0] == messages[1]
    assert "{now}" not in messages[0]


# ---------------------------
# GitCli
# ---------------------------


def test_git_cli_returns_stdout(monkeypatch, tmp_path):
    seen = {}

    def fake_run(command, **kwargs):
        seen["command"] = command
        seen["cwd"] = kwargs["cwd"]
        return SimpleNamespace(returncode=0, stdout="* main\n", stderr="")

    monkeypatch.setattr(git_cli.subprocess, "run", fake_run)

    assert GitCli(tmp_path).list_branches() == "* main\n"
    assert seen == {"command": ["git", "branch"], "cwd": tmp_path}


def test_git_cli_push_arguments(monkeypatch, tmp_path):
    commands = []

    def fake_run(command, **kwargs):
        commands.append(command)
        return SimpleNamespace(returncode=0, stdout="", stderr="")

    monkeypatch.setattr(git_cli.subprocess, "run", fake_run)

    cli = GitCli(tmp_path)
    cli.stage_all()
    cli.commit("msg")
    cli.force_push("gh-pages")

    assert commands == [
        ["git", "add", "--all"],
        ["git", "commit", "-m", "msg"],
        ["git", "push", "--force", "origin", "gh-pages"],
    ]


def test_git_cli_error_carries_stderr(monkeypatch, tmp_path):
    monkeypatch.setattr(
        git_cli.subprocess,
        "run",
        lambda command, **kwargs: SimpleNamespace(
            returncode=1, stdout="", stderr="fatal: 'origin' does not appear\n"
        ),
    )

    with pytest.raises(GitCommandError) as e:
        GitCli(tmp_path).force_push("main")

    assert str(e.value) == "fatal: 'origin' does not appear"


def test_git_cli_error_falls_back_to_stdout(monkeypatch, tmp_path):
    """Повторная публикация без изменений: git объясняет отказ в stdout."""
    monkeypatch.setattr(
        git_cli.subprocess,
        "run",
        lambda command, **kwargs: SimpleNamespace(
            returncode=1,
            stdout="On branch main\nnothing to commit, working tree clean\n",
            stderr="",
        ),
    )

    with pytest.raises(GitCommandError) as e:
        GitCli(tmp_path).commit("msg")

    assert "nothing to commit, working tree clean" in str(e.value)


def test_git_cli_error_without_output(monkeypatch, tmp_path):
    monkeypatch.setattr(
        git_cli.subprocess,
        "run",
        lambda command, **kwargs: SimpleNamespace(returncode=1, stdout="", stderr=""),
    )

    with pytest.raises(GitCommandError) as e:
        GitCli(tmp_path).commit("msg")

    assert "кодом 1" in str(e.value)


def test_git_cli_missing_executable(monkeypatch, tmp_path):
    def fake_run(command, **kwargs):
        raise FileNotFoundError(2, "No such file or directory", "git")

    monkeypatch.setattr(git_cli.subprocess, "run", fake_run)

    with pytest.raises(GitCommandError):
        GitCli(tmp_path).list_branches()


# ---------------------------
# integration with real git
# ---------------------------


def _git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args], cwd=cwd, capture_output=True, text=True, check=True
    )
    return result.stdout


@pytest.mark.skipif(shutil.which("git") is None, reason="git не установлен")
def test_publish_to_bare_remote(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", "/dev/null")
    for var in ("GIT_AUTHOR_NAME", "GIT_COMMITTER_NAME"):
        monkeypatch.setenv(var, "Deployer")
    for var in ("GIT_AUTHOR_EMAIL", "GIT_COMMITTER_EMAIL"):
        monkeypatch.setenv(var, "deployer@example.com")

    remote = tmp_path / "remote.git"
    work = tmp_path / "work"
    remote.mkdir()
    work.mkdir()
    _git(remote, "init", "--bare")
    _git(work, "init")
    _git(work, "checkout", "-b", "pages")
    _git(work, "remote", "add", "origin", str(remote))
    (work / "index.html").write_text("v1", encoding="utf-8")
    _git(work, "add", "--all")
    _git(work, "commit", "-m", "init")

    (work / "index.html").unlink()
    (work / "about.html").write_text("v2", encoding="utf-8")

    GitTask.from_conf(f"git://{work}", message="Site {now}").do(make_ctx(work))

    stamp = PROCESS_STARTED_AT.isoformat(timespec="seconds")
    assert _git(remote, "log", "-1", "--format=%s", "pages").strip() == f"Site {stamp}"
    assert _git(remote, "ls-tree", "--name-only", "pages").split() == ["about.html"]
