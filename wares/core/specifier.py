"""依赖选择符（Specifier）模型与解析

一个依赖只能使用下列选择符之一，未显式指定时为 DefaultBranch:

  DefaultBranch              跟踪远程默认分支
  Branch(name)               跟踪指定分支
  Commit(oid)                固定到 40 位十六进制提交号
  Tag(name)                  固定到标签指向的提交
  Rev(ref)                   固定到完整引用名（如 refs/heads/foo）指向的提交
  VersionRange(requirement)  满足 semver 范围的最高版本标签

清单中的两种写法:

  紧凑字符串  "<provider>:<owner>/<repo><sigil><selector>"
             sigil: '@' 版本范围, '/' 分支, '!' 引用, '#' 标签, 省略则默认分支
             provider: git (显式 URL), github/gh, gitlab/gl
  表格       { type = "gh", username = "...", repository = "...", version = "^1.0" }
             git 类型使用 url 键；version/commit/rev/branch/tag 至多出现一个
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

import semantic_version

from wares.core.exceptions import ManifestParseError

GITHUB_URL = "https://github.com/{owner}/{repo}.git"
GITLAB_URL = "https://gitlab.com/{owner}/{repo}.git"

_PROVIDER_TEMPLATES = {
    "github": GITHUB_URL,
    "gh": GITHUB_URL,
    "gitlab": GITLAB_URL,
    "gl": GITLAB_URL,
}

_OWNER_REPO_RE = re.compile(r"(?P<owner>[\w-]+)/(?P<repo>[\w.-]+)")
_GIT_URL_RE = re.compile(r"(?:https?|ssh|git|file)://[\w.@:/\-~+]+?\.git(?![\w.])")
_HEX40_RE = re.compile(r"^[0-9a-fA-F]{40}$")
_PRERELEASE_CLAUSE_RE = re.compile(r"^[\^~=<>!]*(\d+)(?:\.(\d+))?(?:\.(\d+))?-")

SELECTOR_KEYS = ("version", "commit", "rev", "branch", "tag")


# =========================================================================
# 选择符变体
# =========================================================================

@dataclass(frozen=True)
class DefaultBranch:
    def render(self) -> str:
        return ""


@dataclass(frozen=True)
class Branch:
    name: str

    def render(self) -> str:
        return f"/{self.name}"


@dataclass(frozen=True)
class Commit:
    """40 位小写十六进制提交号（20 字节）"""

    oid: str

    @classmethod
    def parse(cls, text: str) -> Commit:
        if not _HEX40_RE.match(text):
            raise ManifestParseError(
                f"提交号必须是 40 位十六进制字符: {text!r}", key="commit",
            )
        return cls(text.lower())

    def render(self) -> str:
        # 紧凑字符串没有提交号写法，只能用表格形式
        raise ValueError("commit 选择符没有紧凑字符串形式")


@dataclass(frozen=True)
class Tag:
    name: str

    def render(self) -> str:
        return f"#{self.name}"


@dataclass(frozen=True)
class Rev:
    ref: str

    def render(self) -> str:
        return f"!{self.ref}"


@dataclass(frozen=True)
class VersionRange:
    """semver 范围，保留原始文本用于显示与回写"""

    requirement: str
    spec: semantic_version.SimpleSpec = field(compare=False, repr=False)
    # 子句中显式写出预发布号的 (major, minor, patch)
    prerelease_cores: frozenset[tuple[int, int, int]] = field(
        default=frozenset(), compare=False, repr=False,
    )

    @classmethod
    def parse(cls, text: str) -> VersionRange:
        normalized = normalize_requirement(text)
        try:
            spec = semantic_version.SimpleSpec(normalized)
        except ValueError as e:
            raise ManifestParseError(
                f"无法解析版本范围 {text!r}: {e}", key="version",
            ) from e
        cores = frozenset(
            (int(m[1]), int(m[2] or 0), int(m[3] or 0))
            for m in map(_PRERELEASE_CLAUSE_RE.match, normalized.split(","))
            if m is not None
        )
        return cls(requirement=text.strip(), spec=spec, prerelease_cores=cores)

    def matches(self, version: semantic_version.Version) -> bool:
        """预发布版本只有在某个子句写出同一 major.minor.patch 的预发布号时才参与匹配"""
        if version.prerelease and (
            (version.major, version.minor, version.patch) not in self.prerelease_cores
        ):
            return False
        return self.spec.match(version)

    def render(self) -> str:
        return f"@{self.requirement}"


Specifier = DefaultBranch | Branch | Commit | Tag | Rev | VersionRange


def normalize_requirement(text: str) -> str:
    """把 Cargo 风格的范围文本整理成 SimpleSpec 可接受的形式

    - 逗号分隔的子句两侧及运算符与版本号之间的空白被去掉
    - 没有运算符的子句按 Cargo 规则视为 '^'（"1.2" 等价于 "^1.2"）
    """
    clauses = []
    for raw in text.split(","):
        clause = "".join(raw.split())
        if not clause:
            raise ManifestParseError(f"版本范围中存在空子句: {text!r}", key="version")
        if clause[0].isdigit():
            clause = "^" + clause
        clauses.append(clause)
    return ",".join(clauses)


# =========================================================================
# 解析
# =========================================================================

def parse_selector(rest: str) -> Specifier:
    """解析仓库标识之后的 '<sigil><selector>' 部分"""
    if not rest:
        return DefaultBranch()

    sigil, value = rest[0], rest[1:]
    if sigil not in "@/!#":
        raise ManifestParseError(f"无法识别的选择符: {rest!r}")
    if not value:
        raise ManifestParseError(f"选择符 {sigil!r} 之后缺少内容: {rest!r}")

    if sigil == "@":
        return VersionRange.parse(value)
    if sigil == "/":
        return Branch(value)
    if sigil == "!":
        return Rev(value)
    return Tag(value)


def _parse_compact(text: str) -> tuple[str, Specifier]:
    provider, sep, body = text.partition(":")
    if not sep:
        raise ManifestParseError(f"依赖字符串缺少 '<provider>:' 前缀: {text!r}")

    if provider in _PROVIDER_TEMPLATES:
        m = _OWNER_REPO_RE.match(body)
        if m is None:
            raise ManifestParseError(
                f"无法从 {text!r} 中解析 <owner>/<repo>", key="repository",
            )
        repo = m.group("repo")
        if repo.endswith(".git"):
            repo = repo[:-4]
        url = _PROVIDER_TEMPLATES[provider].format(owner=m.group("owner"), repo=repo)
        return url, parse_selector(body[m.end():])

    if provider == "git":
        m = _GIT_URL_RE.match(body)
        if m is None:
            raise ManifestParseError(f"无法从 {text!r} 中解析 git 地址", key="url")
        return m.group(0), parse_selector(body[m.end():])

    raise ManifestParseError(f"未知的依赖来源类型: {provider!r}", key="type")


def _get_str(table: dict[str, Any], key: str) -> str:
    if key not in table:
        raise ManifestParseError(f"依赖缺少 {key} 键", key=key)
    value = table[key]
    if not isinstance(value, str):
        raise ManifestParseError(f"{key} 键必须是字符串", key=key)
    return value


def _parse_table(table: dict[str, Any]) -> tuple[str, Specifier]:
    dep_type = _get_str(table, "type")
    if dep_type == "git":
        url = _get_str(table, "url")
    elif dep_type in _PROVIDER_TEMPLATES:
        url = _PROVIDER_TEMPLATES[dep_type].format(
            owner=_get_str(table, "username"), repo=_get_str(table, "repository"),
        )
    else:
        raise ManifestParseError(f"未知的依赖来源类型: {dep_type!r}", key="type")

    present = [k for k in SELECTOR_KEYS if k in table]
    if len(present) > 1:
        raise ManifestParseError(
            f"version/commit/rev/branch/tag 只能指定一个，实际: {', '.join(present)}",
            key=present[1],
        )
    if not present:
        return url, DefaultBranch()

    key = present[0]
    value = _get_str(table, key)
    if key == "version":
        return url, VersionRange.parse(value)
    if key == "commit":
        return url, Commit.parse(value)
    if key == "rev":
        return url, Rev(value)
    if key == "branch":
        return url, Branch(value)
    return url, Tag(value)


def parse_dependency(value: Any) -> tuple[str, Specifier]:
    """解析清单中的单个依赖声明，返回 (仓库地址, 选择符)"""
    if isinstance(value, str):
        return _parse_compact(value)
    if isinstance(value, dict):
        return _parse_table(value)
    raise ManifestParseError("依赖声明必须是字符串或表格", key="type")


# =========================================================================
# 回写
# =========================================================================

_GITHUB_RE = re.compile(r"^https://github\.com/([\w-]+)/([\w.-]+)\.git$")
_GITLAB_RE = re.compile(r"^https://gitlab\.com/([\w-]+)/([\w.-]+)\.git$")


def render_compact(url: str, specifier: Specifier) -> str:
    """把 (地址, 选择符) 渲染回紧凑字符串；Commit 没有紧凑形式，抛 ValueError"""
    selector = specifier.render()
    if m := _GITHUB_RE.match(url):
        return f"gh:{m.group(1)}/{m.group(2)}{selector}"
    if m := _GITLAB_RE.match(url):
        return f"gl:{m.group(1)}/{m.group(2)}{selector}"
    return f"git:{url}{selector}"


def to_table(url: str, specifier: Specifier) -> dict[str, str]:
    """把 (地址, 选择符) 渲染为 type = "git" 的表格形式"""
    table = {"type": "git", "url": url}
    if isinstance(specifier, VersionRange):
        table["version"] = specifier.requirement
    elif isinstance(specifier, Commit):
        table["commit"] = specifier.oid
    elif isinstance(specifier, Rev):
        table["rev"] = specifier.ref
    elif isinstance(specifier, Branch):
        table["branch"] = specifier.name
    elif isinstance(specifier, Tag):
        table["tag"] = specifier.name
    return table
