"""清单加载测试"""

from __future__ import annotations

from pathlib import Path

import pytest

from wares.core.exceptions import ManifestParseError, ValidationError, WaresIOError
from wares.core.manifest import ManifestFile
from wares.core.specifier import Branch, DefaultBranch, Tag, VersionRange

MANIFEST = """
manifest_version = 1

[dependencies]
fmt = "gh:fmtlib/fmt@^10.0"
glfw = { type = "gh", username = "glfw", repository = "glfw", tag = "3.4" }
zlib = "gh:madler/zlib"

[dev]
catch2 = "gh:catchorg/Catch2/devel"

[bench]
nanobench = "gh:martinus/nanobench"
"""


class TestParse:
    def test_groups_in_document_order(self) -> None:
        m = ManifestFile.parse(MANIFEST)
        assert m.manifest_version == 1
        assert list(m.dependency_groups) == ["dependencies", "dev", "bench"]
        assert [d.name for d in m.dependency_groups["dependencies"]] == ["fmt", "glfw", "zlib"]

    def test_entries(self) -> None:
        deps = {d.name: d for d in ManifestFile.parse(MANIFEST).dependency_groups["dependencies"]}
        assert deps["fmt"].repo_url == "https://github.com/fmtlib/fmt.git"
        assert isinstance(deps["fmt"].specifier, VersionRange)
        assert deps["glfw"].specifier == Tag("3.4")
        assert deps["zlib"].specifier == DefaultBranch()

    def test_missing_manifest_version(self) -> None:
        with pytest.raises(ManifestParseError, match="manifest_version"):
            ManifestFile.parse("[dependencies]\n")

    @pytest.mark.parametrize("value", ['"1"', "true", "1.5"])
    def test_manifest_version_wrong_type(self, value: str) -> None:
        with pytest.raises(ManifestParseError, match="整数"):
            ManifestFile.parse(f"manifest_version = {value}\n")

    def test_group_must_be_table(self) -> None:
        with pytest.raises(ManifestParseError, match="表格") as exc:
            ManifestFile.parse('manifest_version = 1\ndependencies = "x"\n')
        assert exc.value.group == "dependencies"

    def test_dependency_error_carries_context(self) -> None:
        text = 'manifest_version = 1\n[dev]\nbad = "svn:acme/foo"\n'
        with pytest.raises(ManifestParseError, match=r"\[dev\] bad") as exc:
            ManifestFile.parse(text)
        assert exc.value.group == "dev"
        assert exc.value.dependency == "bad"
        assert exc.value.key == "type"

    def test_toml_syntax_error(self) -> None:
        with pytest.raises(ManifestParseError, match="TOML"):
            ManifestFile.parse("manifest_version = \n")

    def test_load_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(WaresIOError) as exc:
            ManifestFile.load(tmp_path / "wares.toml")
        assert exc.value.operation == "read manifest"


class TestGroups:
    def test_default_group_always_first(self) -> None:
        m = ManifestFile.parse(MANIFEST)
        assert m.groups_for(["dev", "dependencies", "dev"]) == ["dependencies", "dev"]

    def test_unknown_group(self) -> None:
        m = ManifestFile.parse(MANIFEST)
        with pytest.raises(ValidationError, match="test"):
            m.groups_for(["test"])

    def test_dep_names_union(self) -> None:
        m = ManifestFile.parse(MANIFEST)
        assert m.dep_names() == ["fmt", "glfw", "zlib"]
        assert m.dep_names(["bench", "dev"]) == ["fmt", "glfw", "zlib", "nanobench", "catch2"]

    def test_missing_default_group_is_empty(self) -> None:
        m = ManifestFile.parse('manifest_version = 1\n[dev]\nx = "gh:a/x/main"\n')
        assert m.dep_names() == []
        assert m.dependencies_for(["dev"])[0].specifier == Branch("main")

    def test_duplicate_names_across_requested_groups(self) -> None:
        text = MANIFEST + '\n[extra]\nzlib = "gh:other/zlib"\n'
        m = ManifestFile.parse(text)
        # 未请求的分组不参与唯一性检查
        assert "zlib" in m.dep_names(["dev"])
        with pytest.raises(ManifestParseError, match="zlib"):
            m.dependencies_for(["extra"])
