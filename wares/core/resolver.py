"""依赖解析器: 选择符 → 已解析标识

解析规则:
  - DefaultBranch / Branch: 原样写入锁文件，不访问远程（浮动版本）
  - Commit:       直接作为 CommitId，不校验远程是否存在（安装时才暴露）
  - VersionRange: ls-remote 列出全部标签，取满足范围的最高版本
  - Tag:          ls-remote 中精确匹配 refs/tags/<name>
  - Rev:          ls-remote 中精确匹配完整引用名

网络错误不做自动重试。同一个 Resolver 实例内对同一地址只做一次 ls-remote。
"""

from __future__ import annotations

import logging
import re
import threading

import semantic_version

from wares.core.exceptions import (
    GitCommandError,
    NoMatchError,
    NoRevError,
    NoTagError,
    RemoteError,
    ValidationError,
    VersionParseError,
)
from wares.core.git import GitClient, RemoteRef
from wares.core.lockfile import Branch as LockedBranch
from wares.core.lockfile import CommitId, LockedDependency
from wares.core.lockfile import DefaultBranch as LockedDefaultBranch
from wares.core.specifier import (
    Branch,
    Commit,
    DefaultBranch,
    Rev,
    Specifier,
    Tag,
    VersionRange,
)
from wares.utils.net import validate_git_url

logger = logging.getLogger(__name__)

_NUM = r"(?:0|[1-9]\d*)"
_IDENT = r"[0-9A-Za-z-]+"
VERSION_TAG_RE = re.compile(
    rf"^refs/tags/v?({_NUM}(?:\.{_NUM}){{0,2}}"
    rf"(?:-{_IDENT}(?:\.{_IDENT})*)?"
    rf"(?:\+{_IDENT}(?:\.{_IDENT})*)?)"
    r"(?:\^\{\})?$"
)
_CORE_RE = re.compile(r"^([0-9.]+)(.*)$")


def canonicalize_version(text: str) -> str:
    """补齐缺失的 minor / patch: '2' → '2.0.0', '2.3' → '2.3.0', '2-rc.1' → '2.0.0-rc.1'"""
    m = _CORE_RE.match(text)
    if m is None:
        return text
    core, suffix = m.groups()
    missing = 3 - (core.count(".") + 1)
    return core + ".0" * max(missing, 0) + suffix


def collect_versions(
    refs: list[RemoteRef], *, url: str = "",
) -> dict[semantic_version.Version, str]:
    """从引用列表中提取版本标签，按版本升序返回 版本 → oid

    附注标签的解引用条目（^{}）排在标签条目之后，后写覆盖，最终得到提交本身的 oid。
    """
    versions: dict[semantic_version.Version, str] = {}
    for ref in refs:
        m = VERSION_TAG_RE.match(ref.name)
        if m is None:
            continue
        text = canonicalize_version(m.group(1))
        try:
            version = semantic_version.Version(text)
        except ValueError as e:
            raise VersionParseError(f"无法解析标签 {ref.name} 的版本号: {e}", url=url) from e
        versions[version] = ref.oid
    return dict(sorted(versions.items()))


def select_version(
    versions: dict[semantic_version.Version, str], requirement: VersionRange,
) -> tuple[semantic_version.Version, str] | None:
    """从高到低找第一个满足范围的版本"""
    for version in sorted(versions, reverse=True):
        if requirement.matches(version):
            return version, versions[version]
    return None


def find_ref(refs: list[RemoteRef], name: str) -> str | None:
    """按通告顺序精确匹配引用名；存在解引用条目时优先返回其提交 oid"""
    peeled = next((r.oid for r in refs if r.peeled and r.base_name == name), None)
    if peeled is not None:
        return peeled
    return next((r.oid for r in refs if not r.peeled and r.name == name), None)


class Resolver:
    """把清单选择符解析为锁文件条目"""

    def __init__(self, git: GitClient | None = None) -> None:
        self.git = git or GitClient()
        self._refs: dict[str, list[RemoteRef]] = {}
        self._lock = threading.Lock()

    def remote_refs(self, url: str) -> list[RemoteRef]:
        """获取远程引用列表（同一实例内按地址缓存）"""
        with self._lock:
            cached = self._refs.get(url)
        if cached is not None:
            return cached

        try:
            validate_git_url(url, context="ls-remote")
        except ValidationError as e:
            raise RemoteError(e.message, url=url) from e

        logger.info("查询远程引用: %s", url)
        try:
            refs = self.git.ls_remote(url)
        except GitCommandError as e:
            raise RemoteError(f"无法获取远程引用 {url}: {e.message}", url=url) from e

        with self._lock:
            self._refs[url] = refs
        return refs

    def resolve(self, repo_url: str, specifier: Specifier) -> LockedDependency:
        if isinstance(specifier, DefaultBranch):
            return LockedDependency(repo_url, LockedDefaultBranch())
        if isinstance(specifier, Branch):
            return LockedDependency(repo_url, LockedBranch(specifier.name))
        if isinstance(specifier, Commit):
            return LockedDependency(repo_url, CommitId(specifier.oid))
        if isinstance(specifier, VersionRange):
            return LockedDependency(repo_url, CommitId(self.resolve_version(repo_url, specifier)[1]))
        if isinstance(specifier, Tag):
            oid = find_ref(self.remote_refs(repo_url), f"refs/tags/{specifier.name}")
            if oid is None:
                raise NoTagError(specifier.name, url=repo_url)
            logger.info("  %s #%s -> %s", repo_url, specifier.name, oid)
            return LockedDependency(repo_url, CommitId(oid))
        if isinstance(specifier, Rev):
            oid = find_ref(self.remote_refs(repo_url), specifier.ref)
            if oid is None:
                raise NoRevError(specifier.ref, url=repo_url)
            logger.info("  %s !%s -> %s", repo_url, specifier.ref, oid)
            return LockedDependency(repo_url, CommitId(oid))
        raise TypeError(f"未知的选择符类型: {specifier!r}")

    def resolve_version(
        self, repo_url: str, requirement: VersionRange,
    ) -> tuple[semantic_version.Version, str]:
        """返回满足范围的最高版本及其 oid"""
        versions = collect_versions(self.remote_refs(repo_url), url=repo_url)
        selected = select_version(versions, requirement)
        if selected is None:
            raise NoMatchError(requirement.requirement, url=repo_url)
        logger.info("  %s @%s -> %s (%s)", repo_url, requirement.requirement, selected[0], selected[1])
        return selected
