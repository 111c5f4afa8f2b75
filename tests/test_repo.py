from __future__ import annotations

import io
import os
import stat
import subprocess
from unittest import mock

import pytest

from gitbuilder.repo import (
    ReceiveError,
    create_pre_receive_hook,
    create_repo,
    receive,
    render_pre_receive_hook,
)


class FakeChannel:
    def __init__(self, data: bytes = b"") -> None:
        self._input = io.BytesIO(data)
        self.output = io.BytesIO()
        self.stderr = io.BytesIO()

    def read(self, size):
        return self._input.read(size)

    def write(self, data):
        return self.output.write(data)


def _existing_repo(git_home, name):
    repo = git_home / name
    (repo / "hooks").mkdir(parents=True)
    return repo


def _fake_git_shell(tmp_path, monkeypatch, body):
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    script = bin_dir / "git-shell"
    script.write_text("#!/bin/sh\n" + body)
    script.chmod(0o755)
    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")
    monkeypatch.delenv("RECEIVE_USER", raising=False)
    monkeypatch.delenv("RECEIVE_REPO", raising=False)


def test_render_pre_receive_hook_sets_git_home():
    text = render_pre_receive_hook("TestGitHome")
    assert "GIT_HOME=TestGitHome" in text
    assert text.startswith("#!/bin/bash\n")
    assert text.endswith("boot git-receive | strip_remote_prefix\n")


def test_create_pre_receive_hook(tmp_path):
    (tmp_path / "hooks").mkdir()
    create_pre_receive_hook("TestGitHome", str(tmp_path))
    hook = tmp_path / "hooks" / "pre-receive"
    assert "GIT_HOME=TestGitHome" in hook.read_text()
    assert stat.S_IMODE(hook.stat().st_mode) == 0o755


def test_create_pre_receive_hook_without_hooks_dir(tmp_path):
    with pytest.raises(ReceiveError, match="Cannot create pre-receive hook file"):
        create_pre_receive_hook("home", str(tmp_path / "missing"))


def test_create_repo_existing_dir(tmp_path):
    assert create_repo(str(tmp_path)) is False


def test_create_repo_file_in_the_way(tmp_path):
    path = tmp_path / "file"
    path.write_text("x")
    with pytest.raises(ReceiveError, match="Expected directory, found file"):
        create_repo(str(path))


def test_create_repo_runs_git_init(tmp_path):
    repo = tmp_path / "new.git"
    done = subprocess.CompletedProcess(["git"], 0, stdout=b"")
    with mock.patch("subprocess.run", return_value=done) as run:
        assert create_repo(str(repo)) is True
    assert repo.is_dir()
    assert run.call_args.args[0] == ["git", "init", "--bare"]
    assert run.call_args.kwargs["cwd"] == str(repo)


def test_create_repo_git_init_failure(tmp_path):
    failed = subprocess.CompletedProcess(["git"], 128, stdout=b"boom")
    with mock.patch("subprocess.run", return_value=failed):
        with pytest.raises(ReceiveError, match="exit status 128"):
            create_repo(str(tmp_path / "bad.git"))


def test_receive_mock_writes_ok(tmp_path):
    channel = FakeChannel()
    receive("app.git", "git-receive-pack", str(tmp_path), channel, "fp", "user", "c", "mock")
    assert channel.output.getvalue() == b"OK"


def test_receive_fails_when_repo_path_is_file(tmp_path):
    (tmp_path / "app.git").write_text("x")
    with pytest.raises(ReceiveError, match="Did not create new repo"):
        receive("app.git", "git-receive-pack", str(tmp_path), FakeChannel(), "fp", "u", "c", "git")


def test_receive_streams_through_git_shell(tmp_path, monkeypatch):
    home = tmp_path / "home"
    _existing_repo(home, "app.git")
    _fake_git_shell(tmp_path, monkeypatch, 'cat\necho "$RECEIVE_USER $RECEIVE_REPO $2"\n')
    channel = FakeChannel(b"objects\n")
    receive("app.git", "git-receive-pack", str(home), channel, "fp", "alice", "c", "gitreceive")
    assert channel.output.getvalue() == b"objects\nalice app.git git-receive-pack 'app.git'\n"
    assert (home / "app.git" / "hooks" / "pre-receive").exists()


def test_receive_reports_stderr_output(tmp_path, monkeypatch):
    home = tmp_path / "home"
    _existing_repo(home, "app.git")
    _fake_git_shell(tmp_path, monkeypatch, "cat >/dev/null\necho warning >&2\n")
    channel = FakeChannel(b"")
    with pytest.raises(ReceiveError, match="warning"):
        receive("app.git", "git-receive-pack", str(home), channel, "fp", "u", "c", "gitreceive")
    assert channel.stderr.getvalue() == b"warning\n"


def test_receive_reports_failure_exit(tmp_path, monkeypatch):
    home = tmp_path / "home"
    _existing_repo(home, "app.git")
    _fake_git_shell(tmp_path, monkeypatch, "cat >/dev/null\necho denied >&2\nexit 3\n")
    with pytest.raises(ReceiveError, match=r"Failed to run git pre-receive hook: denied"):
        receive("app.git", "git-receive-pack", str(home), FakeChannel(), "fp", "u", "c", "gitreceive")