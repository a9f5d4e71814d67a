"""网络工具: git 远程地址安全校验"""

from __future__ import annotations

import re
from urllib.parse import urlparse

from wares.core.exceptions import ValidationError

_ALLOWED_SCHEMES = frozenset(("https", "http", "ssh", "git", "file"))

# scp 风格地址: user@host:path
_SCP_LIKE_RE = re.compile(r"^[\w.-]+@[\w.-]+:[^:]")


def validate_git_url(url: str, *, context: str = "") -> None:
    """校验交给 git 的远程地址，拒绝 ext:: 等可执行任意命令的传输协议

    Raises:
        ValidationError: 协议不在白名单内或地址以 '-' 开头
    """
    label = f" ({context})" if context else ""
    if not url or url.startswith("-"):
        raise ValidationError(f"无效的仓库地址{label}: {url!r}")
    if _SCP_LIKE_RE.match(url):
        return
    parsed = urlparse(url)
    if parsed.scheme not in _ALLOWED_SCHEMES:
        raise ValidationError(
            f"不允许的仓库地址协议 '{parsed.scheme}'{label}，"
            f"仅支持 {'/'.join(sorted(_ALLOWED_SCHEMES))}: {url}"
        )
