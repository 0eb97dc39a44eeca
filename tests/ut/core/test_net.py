"""网络工具测试 — URL scheme 校验 + 默认 HTTP 客户端"""

import urllib.error
from unittest.mock import MagicMock, patch

import pytest

import pcomposer.utils.net as netmod
from pcomposer.core.exceptions import ValidationError
from pcomposer.utils.net import UrllibClient, get_http_client, set_http_client, validate_url_scheme


class TestValidateUrlScheme:
    def test_http_ok(self) -> None:
        validate_url_scheme("http://example.com/api")

    def test_https_ok(self) -> None:
        validate_url_scheme("https://repo.packagist.org/p2/vendor/pkg.json")

    def test_file_rejected(self) -> None:
        with pytest.raises(ValidationError, match="不允许的 URL 协议"):
            validate_url_scheme("file:///etc/passwd")

    def test_ftp_rejected(self) -> None:
        with pytest.raises(ValidationError, match="不允许的 URL 协议"):
            validate_url_scheme("ftp://evil.com/payload")

    def test_empty_scheme_rejected(self) -> None:
        with pytest.raises(ValidationError, match="不允许的 URL 协议"):
            validate_url_scheme("/local/path")

    def test_context_in_error(self) -> None:
        with pytest.raises(ValidationError, match="dist download"):
            validate_url_scheme("file:///x", context="dist download")


class TestUrllibClient:
    def test_returns_body_with_headers(self) -> None:
        resp = MagicMock()
        resp.read.return_value = b'{"ok": true}'
        resp.__enter__.return_value = resp
        with patch("urllib.request.urlopen", return_value=resp) as urlopen:
            body = UrllibClient(timeout=7).get("https://repo.test/x.json")

        assert body == b'{"ok": true}'
        req = urlopen.call_args.args[0]
        assert req.get_header("User-agent").startswith("PComposer/")
        assert req.get_header("Accept") == "application/json"
        assert urlopen.call_args.kwargs["timeout"] == 7

    def test_failure_becomes_connection_error(self) -> None:
        with patch("urllib.request.urlopen", side_effect=urllib.error.URLError("refused")):
            with pytest.raises(ConnectionError, match="请求失败"):
                UrllibClient().get("https://repo.test/x.json")


def test_set_http_client(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = MagicMock()
    monkeypatch.setattr(netmod, "_default_client", netmod._default_client)
    set_http_client(fake)
    assert get_http_client() is fake
