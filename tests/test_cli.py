"""命令行测试: click CliRunner + 替换全局命令执行器"""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from wares.cli import main
from wares.core.cache import CachedObject, CacheRegistry
from wares.core.lockfile import Branch, CommitId, LockedDependency, LockFile
from wares.utils.logger import reset_logging
from wares.utils.shell import get_executor, set_executor

FOO = "https://github.com/acme/foo.git"
OID = "9" * 40
ENV = {"WARES_LOG_LEVEL": "CRITICAL", "WARES_CACHE": ""}


@pytest.fixture(autouse=True)
def _global_executor(fake_git):
    original = get_executor()
    set_executor(fake_git)
    yield
    set_executor(original)
    reset_logging()


@pytest.fixture()
def project(tmp_path, fake_git):
    fake_git.add_remote(FOO, [(OID, "refs/tags/v1.2.0")])
    (tmp_path / "wares.toml").write_text(
        'manifest_version = 1\n[dependencies]\nfoo = "gh:acme/foo@^1"\n[dev]\nbar = "gh:acme/bar/main"\n'
    )
    return tmp_path


def _sync(project, *args):
    return CliRunner().invoke(
        main,
        ["sync", "--root", str(project), "--current", str(project),
         "--cache", str(project / "cache"), *args],
        env=ENV,
    )


class TestSyncCommand:
    def test_prints_install_lines(self, project):
        result = _sync(project, "dev")
        assert result.exit_code == 0, result.output
        cache = (project / "cache").resolve()
        assert f"foo installed to: {cache / ('gh-acme-foo-' + OID)}" in result.output
        assert f"bar installed to: {cache / 'gh-acme-bar-main-latest'}" in result.output

    def test_json_output(self, project):
        result = _sync(project, "--json")
        assert result.exit_code == 0
        payload = json.loads(result.output)
        assert payload["ok"] is True
        assert list(payload["paths"]) == ["foo"]

    def test_override(self, project):
        local = project / "vendored"
        local.mkdir()
        result = _sync(project, "-o", f"foo={local}")
        assert result.exit_code == 0
        assert f"foo installed to: {local.resolve()}" in result.output

    def test_bad_override_format(self, project):
        result = _sync(project, "-o", "foo")
        assert result.exit_code == 2
        assert "NAME=PATH" in result.output

    def test_unknown_group_fails(self, project):
        result = _sync(project, "bench")
        assert result.exit_code == 1
        assert "VALIDATION_ERROR" in result.output

    def test_resolution_failure_lists_each_dependency(self, project, fake_git):
        fake_git.remotes[FOO] = []
        result = _sync(project)
        assert result.exit_code == 1
        assert "SYNC_ERROR" in result.output
        assert "foo: [NO_MATCH]" in result.output

    def test_bad_config_file(self, project):
        cfg = project / "wares.yml"
        cfg.write_text("jobs: [1\n")
        result = _sync(project, "--config", str(cfg))
        assert result.exit_code == 1
        assert "YAML" in result.output


class TestLockShow:
    def test_lists_entries(self, tmp_path):
        lock = LockFile(dependencies={
            "foo": LockedDependency(FOO, CommitId(OID)),
            "bar": LockedDependency(FOO, Branch("dev")),
        })
        lock.save(tmp_path / "wares.lock")
        result = CliRunner().invoke(main, ["lock", "show", "--root", str(tmp_path)], env=ENV)
        assert result.exit_code == 0
        assert OID in result.output
        assert "branch dev" in result.output
        lines = {line.split()[0]: line.split()[1] for line in result.output.splitlines() if line.startswith("  ")}
        assert lines == {"bar": "浮动", "foo": "固定"}

    def test_missing_lock(self, tmp_path):
        result = CliRunner().invoke(main, ["lock", "show", "--root", str(tmp_path)], env=ENV)
        assert result.exit_code == 0
        assert "不存在" in result.output


class TestCacheCommands:
    @pytest.mark.parametrize(("args", "expected"), [
        ([], "gh-acme-foo-latest"),
        (["--branch", "dev"], "gh-acme-foo-dev-latest"),
        (["--oid", OID.upper()], f"gh-acme-foo-{OID}"),
    ])
    def test_key(self, args, expected):
        result = CliRunner().invoke(main, ["cache", "key", FOO, *args], env=ENV)
        assert result.exit_code == 0
        assert result.output.strip() == expected

    def test_key_rejects_both(self):
        result = CliRunner().invoke(main, ["cache", "key", FOO, "--branch", "a", "--oid", OID], env=ENV)
        assert result.exit_code == 2

    def test_list(self, tmp_path):
        registry = CacheRegistry(tmp_path / "registry.json")
        registry.record("foo", FOO, CachedObject("tag", "v1.2.0", OID))
        registry.save()
        result = CliRunner().invoke(main, ["cache", "list", "--cache", str(tmp_path)], env=ENV)
        assert result.exit_code == 0
        assert f"foo ({FOO})" in result.output
        assert f"tag v1.2.0 ({OID})" in result.output

    def test_key_rejects_short_oid(self):
        result = CliRunner().invoke(main, ["cache", "key", FOO, "--oid", "abc"], env=ENV)
        assert result.exit_code == 2
