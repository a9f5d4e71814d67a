"""依赖清单（wares.toml）加载

清单格式:

    manifest_version = 1

    [dependencies]
    fmt = "gh:fmtlib/fmt@^10.0"
    glfw = { type = "gh", username = "glfw", repository = "glfw", tag = "3.4" }

    [dev]
    catch2 = "gh:catchorg/Catch2/devel"

除 manifest_version 外，每个顶层表格都是一个依赖分组；"dependencies" 分组
总是参与同步，其余分组由调用方按需启用。清单每次同步都重新读取，不做持久化。
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from wares.core.exceptions import ManifestParseError, ValidationError, WaresIOError
from wares.core.specifier import Specifier, parse_dependency
from wares.utils.fileio import read_text

logger = logging.getLogger(__name__)

DEFAULT_GROUP = "dependencies"


@dataclass
class ManifestDependency:
    """清单中声明的单个依赖"""

    name: str
    repo_url: str
    specifier: Specifier


@dataclass
class ManifestFile:
    """解析后的清单"""

    manifest_version: int
    dependency_groups: dict[str, list[ManifestDependency]] = field(default_factory=dict)

    @classmethod
    def parse(cls, text: str) -> ManifestFile:
        try:
            table = tomllib.loads(text)
        except tomllib.TOMLDecodeError as e:
            raise ManifestParseError(f"TOML 解析失败: {e}") from e

        if "manifest_version" not in table:
            raise ManifestParseError("清单缺少 manifest_version 键", key="manifest_version")
        version = table["manifest_version"]
        # bool 是 int 的子类，需要单独排除
        if not isinstance(version, int) or isinstance(version, bool):
            raise ManifestParseError("manifest_version 必须是整数", key="manifest_version")

        manifest = cls(manifest_version=version)
        for group, deps in table.items():
            if group == "manifest_version":
                continue
            if not isinstance(deps, dict):
                raise ManifestParseError(f"分组 {group} 必须是表格", key=group, group=group)

            entries: list[ManifestDependency] = []
            for name, value in deps.items():
                try:
                    url, specifier = parse_dependency(value)
                except ManifestParseError as e:
                    raise ManifestParseError(
                        f"[{group}] {name}: {e.message}",
                        key=e.key, group=group, dependency=name,
                    ) from e
                entries.append(ManifestDependency(name=name, repo_url=url, specifier=specifier))
            manifest.dependency_groups[group] = entries

        return manifest

    @classmethod
    def load(cls, path: str | Path) -> ManifestFile:
        try:
            text = read_text(path)
        except (OSError, ValueError) as e:
            raise WaresIOError(
                f"读取清单失败: {path}: {e}", operation="read manifest", path=str(path),
            ) from e
        manifest = cls.parse(text)
        logger.info(
            "已加载清单 %s: %d 个分组, %d 个依赖",
            path, len(manifest.dependency_groups),
            sum(len(g) for g in manifest.dependency_groups.values()),
        )
        return manifest

    def groups_for(self, extra_groups: list[str] | tuple[str, ...] = ()) -> list[str]:
        """默认分组 + 调用方启用的额外分组（去重，保持顺序）"""
        groups = [DEFAULT_GROUP]
        missing = []
        for group in extra_groups:
            if group in groups:
                continue
            if group not in self.dependency_groups:
                missing.append(group)
                continue
            groups.append(group)
        if missing:
            raise ValidationError(
                f"清单中不存在依赖分组: {', '.join(missing)}",
                details=sorted(self.dependency_groups),
            )
        return groups

    def dependencies_for(
        self, extra_groups: list[str] | tuple[str, ...] = (),
    ) -> list[ManifestDependency]:
        """请求分组内全部依赖，名字在这些分组之间必须唯一"""
        seen: dict[str, str] = {}
        result: list[ManifestDependency] = []
        for group in self.groups_for(extra_groups):
            for dep in self.dependency_groups.get(group, []):
                if dep.name in seen:
                    raise ManifestParseError(
                        f"依赖 {dep.name} 同时出现在分组 {seen[dep.name]} 和 {group} 中",
                        group=group, dependency=dep.name,
                    )
                seen[dep.name] = group
                result.append(dep)
        return result

    def dep_names(self, extra_groups: list[str] | tuple[str, ...] = ()) -> list[str]:
        return [d.name for d in self.dependencies_for(extra_groups)]
