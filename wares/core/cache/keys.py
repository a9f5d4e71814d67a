"""缓存键生成

缓存键是 (url, 已解析标识) 的纯函数，直接作为缓存根目录下的子目录名:

  https://github.com/acme/foo.git + 默认分支     -> gh-acme-foo-latest
  https://gitlab.com/acme/foo.git + 分支 dev     -> gl-acme-foo-dev-latest
  https://example.com/x/foo.git   + 提交 <oid>   -> example.com_x_foo-<oid>
"""

from __future__ import annotations

import re

from wares.core.lockfile import Branch, CommitId, DefaultBranch, LockedDependency

_GITHUB_RE = re.compile(r"https://github\.com/([A-Za-z0-9_.-]*)/([A-Za-z0-9_.-]*)\.git")
_GITLAB_RE = re.compile(r"https://gitlab\.com/([A-Za-z0-9_.-]*)/([A-Za-z0-9_.-]*)\.git")
_URL_RE = re.compile(r"(?:https://)?(?:www\.)?([A-Za-z0-9_./-]*)\.git")

# 控制字符以及 Windows / Linux 文件名中不允许的字符
_UNSAFE_RE = re.compile(r'[\x00-\x1f/\\<>:"|?*]')


def sanitize_filename(name: str) -> str:
    """把文件名中的非法字符替换为 '_'"""
    return _UNSAFE_RE.sub("_", name)


def url_prefix(url: str) -> str:
    """缓存键中由 url 决定的前半部分"""
    if m := _GITHUB_RE.search(url):
        return f"gh-{m.group(1)}-{m.group(2)}"
    if m := _GITLAB_RE.search(url):
        return f"gl-{m.group(1)}-{m.group(2)}"
    if m := _URL_RE.search(url):
        return sanitize_filename(m.group(1))
    return sanitize_filename(url)


def cache_key(locked: LockedDependency) -> str:
    start = url_prefix(locked.url)
    ident = locked.id
    if isinstance(ident, DefaultBranch):
        return f"{start}-latest"
    if isinstance(ident, Branch):
        return f"{start}-{sanitize_filename(ident.name)}-latest"
    if isinstance(ident, CommitId):
        return f"{start}-{ident.oid}"
    raise TypeError(f"未知的依赖标识类型: {ident!r}")
