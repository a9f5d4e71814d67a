"""git 远程地址校验测试"""

import pytest

from wares.core.exceptions import ValidationError
from wares.utils.net import validate_git_url


class TestValidateGitUrl:
    @pytest.mark.parametrize("url", [
        "https://github.com/acme/foo.git",
        "http://example.com/foo.git",
        "ssh://git@example.com/foo.git",
        "git://example.com/foo.git",
        "file:///srv/git/foo.git",
        "git@github.com:acme/foo.git",
    ])
    def test_allowed(self, url) -> None:
        validate_git_url(url)

    def test_ext_transport_rejected(self) -> None:
        with pytest.raises(ValidationError, match="不允许的仓库地址协议"):
            validate_git_url("ext::sh -c touch% /tmp/pwned")

    def test_ftp_rejected(self) -> None:
        with pytest.raises(ValidationError, match="ftp"):
            validate_git_url("ftp://evil.com/payload.git")

    def test_bare_path_rejected(self) -> None:
        with pytest.raises(ValidationError):
            validate_git_url("/local/path")

    @pytest.mark.parametrize("url", ["", "--upload-pack=touch /tmp/x"])
    def test_option_injection_rejected(self, url) -> None:
        with pytest.raises(ValidationError, match="无效的仓库地址"):
            validate_git_url(url)

    def test_context_in_error(self) -> None:
        with pytest.raises(ValidationError, match="install foo"):
            validate_git_url("ext::x", context="install foo")
