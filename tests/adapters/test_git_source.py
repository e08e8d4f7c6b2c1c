import subprocess
from pathlib import Path

import pytest

from statelessor.adapters import GitSource
from statelessor.adapters import git_source as git_source_module
from statelessor.errors import IngestionError


class FakeGit:
    """Records git invocations and materializes a small clone."""

    def __init__(self, *, files=("Shop/Shop.csproj", "Shop/Home.cs"), stdout="", fail=None):
        self.calls: list[tuple[list[str], dict]] = []
        self.files = files
        self.stdout = stdout
        self.fail = fail

    def __call__(self, args, **kwargs):
        self.calls.append((list(args), kwargs))
        if self.fail is not None:
            raise self.fail
        if args[1] == "clone":
            clone_dir = Path(args[-1])
            for relative in self.files:
                path = clone_dir / relative
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text("class X {}", encoding="utf-8")
        return subprocess.CompletedProcess(args, 0, stdout=self.stdout, stderr="")


def test_checkout_runs_shallow_clone(monkeypatch):
    fake = FakeGit()
    monkeypatch.setattr(git_source_module.subprocess, "run", fake)

    with GitSource().checkout("https://example.com/acme/shop.git", branch="main") as root:
        assert (root / "Shop" / "Home.cs").exists()
        clone_root = root

    args, kwargs = fake.calls[0]
    assert args[:6] == ["git", "clone", "--depth", "1", "--branch", "main"]
    assert args[6] == "https://example.com/acme/shop.git"
    assert kwargs["env"]["GIT_TERMINAL_PROMPT"] == "0"
    assert not clone_root.exists()


def test_checkout_uses_identity_file(monkeypatch, tmp_path: Path):
    fake = FakeGit()
    monkeypatch.setattr(git_source_module.subprocess, "run", fake)
    key = tmp_path / "deploy_key"

    with GitSource().checkout("git@example.com:acme/shop.git", identity_file=key):
        pass

    env = fake.calls[0][1]["env"]
    assert f"-i {key}" in env["GIT_SSH_COMMAND"]
    assert "IdentitiesOnly=yes" in env["GIT_SSH_COMMAND"]


def test_checkout_resolves_subfolder(monkeypatch):
    monkeypatch.setattr(git_source_module.subprocess, "run", FakeGit())

    with GitSource().checkout("https://example.com/acme/shop.git", subfolder="Shop/") as root:
        assert root.name == "Shop"
        assert (root / "Shop.csproj").exists()


@pytest.mark.parametrize("subfolder", ["Missing", "../outside"])
def test_checkout_rejects_bad_subfolder(monkeypatch, subfolder):
    monkeypatch.setattr(git_source_module.subprocess, "run", FakeGit())

    with pytest.raises(IngestionError) as excinfo:
        with GitSource().checkout("https://example.com/acme/shop.git", subfolder=subfolder):
            pass

    assert excinfo.value.code == "source_not_found"


def test_clone_failure_becomes_ingestion_error(monkeypatch):
    failure = subprocess.CalledProcessError(128, ["git", "clone"])
    monkeypatch.setattr(git_source_module.subprocess, "run", FakeGit(fail=failure))

    with pytest.raises(IngestionError) as excinfo:
        with GitSource().checkout("https://example.com/acme/missing.git"):
            pass

    assert excinfo.value.code == "git_clone_failed"
    assert "exit code 128" in excinfo.value.message


def test_missing_git_executable(monkeypatch):
    monkeypatch.setattr(git_source_module.subprocess, "run", FakeGit(fail=FileNotFoundError()))

    with pytest.raises(IngestionError) as excinfo:
        with GitSource(git_bin="git-missing").checkout("https://example.com/acme/shop.git"):
            pass

    assert "git-missing" in excinfo.value.message


def test_connection_check_for_branch(monkeypatch):
    fake = FakeGit(stdout="abc123\trefs/heads/main\n")
    monkeypatch.setattr(git_source_module.subprocess, "run", fake)

    assert GitSource().test_connection("https://example.com/acme/shop.git", branch="main")
    assert fake.calls[0][0] == [
        "git",
        "ls-remote",
        "--heads",
        "https://example.com/acme/shop.git",
        "main",
    ]


def test_connection_check_reports_missing_branch(monkeypatch):
    monkeypatch.setattr(git_source_module.subprocess, "run", FakeGit(stdout=""))

    assert not GitSource().test_connection("https://example.com/acme/shop.git", branch="gone")


def test_connection_check_reports_unreachable_remote(monkeypatch):
    failure = subprocess.CalledProcessError(128, ["git", "ls-remote"])
    monkeypatch.setattr(git_source_module.subprocess, "run", FakeGit(fail=failure))

    assert not GitSource().test_connection("https://example.com/acme/shop.git")
