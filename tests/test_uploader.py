"""Tests for the GitHub uploader and page fetcher, using fake HTTP sessions."""

import base64

import requests

from asset_cdn.config import GithubConfig
from asset_cdn.fetcher import build_session, fetch_page
from asset_cdn.uploader import GithubUploader, content_matches_extension

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self.payload = payload
        self.text = text

    def json(self):
        return self.payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")


class FakeSession:
    def __init__(self, get_response=None, put_response=None, error=None):
        self.headers = {}
        self.get_response = get_response or FakeResponse(404)
        self.put_response = put_response or FakeResponse(201)
        self.error = error
        self.gets = []
        self.puts = []

    def get(self, url, **kwargs):
        self.gets.append((url, kwargs))
        if self.error:
            raise self.error
        return self.get_response

    def put(self, url, json=None, **kwargs):
        self.puts.append((url, json))
        return self.put_response


def make_uploader(session):
    config = GithubConfig(token="secret", repository="acme/cdn", branch="assets")
    return GithubUploader(config, session=session)


class TestGithubUploader:
    """Contents API request shape and failure handling."""

    def test_creates_new_file(self, tmp_path):
        local = tmp_path / "app.js"
        local.write_bytes(b"console.log(1);")
        session = FakeSession()

        assert make_uploader(session).upload_file(local, "frontend/app.js")

        assert session.headers["Authorization"] == "Bearer secret"
        url, body = session.puts[0]
        assert url == "https://api.github.com/repos/acme/cdn/contents/frontend/app.js"
        assert body["branch"] == "assets"
        assert "sha" not in body
        assert base64.b64decode(body["content"]) == b"console.log(1);"
        assert session.gets[0][1]["params"] == {"ref": "assets"}

    def test_updates_existing_file(self, tmp_path):
        local = tmp_path / "styles.css"
        local.write_text("body{}", encoding="utf-8")
        session = FakeSession(get_response=FakeResponse(200, {"sha": "abc123"}))

        assert make_uploader(session).upload_file(local, "frontend/styles.css")
        assert session.puts[0][1]["sha"] == "abc123"

    def test_put_failure_returns_false(self, tmp_path):
        local = tmp_path / "app.js"
        local.write_bytes(b"x")
        session = FakeSession(put_response=FakeResponse(500))
        assert not make_uploader(session).upload_file(local, "frontend/app.js")

    def test_transport_error_returns_false(self, tmp_path):
        local = tmp_path / "app.js"
        local.write_bytes(b"x")
        session = FakeSession(error=requests.ConnectionError("down"))
        assert not make_uploader(session).upload_file(local, "frontend/app.js")
        assert session.puts == []

    def test_refuses_fake_image(self, tmp_path):
        local = tmp_path / "logo.png"
        local.write_bytes(b"not an image at all")
        session = FakeSession()
        assert not make_uploader(session).upload_file(local, "images/logo.png")
        assert session.gets == []

    def test_missing_local_file(self, tmp_path):
        session = FakeSession()
        assert not make_uploader(session).upload_file(tmp_path / "nope.js", "nope.js")


class TestContentCheck:
    def test_png_signature(self):
        assert content_matches_extension(PNG_BYTES, "png")
        assert not content_matches_extension(b"plain text", "PNG")

    def test_text_assets_unchecked(self):
        assert content_matches_extension(b"body{}", "css")
        assert content_matches_extension(b"<svg/>", "svg")


class TestFetchPage:
    def test_returns_body(self):
        session = FakeSession(get_response=FakeResponse(200, text="<html></html>"))
        assert fetch_page("https://shop.example.com", session=session) == "<html></html>"
        _, kwargs = session.gets[0]
        assert kwargs["timeout"] == 30.0
        assert kwargs["allow_redirects"] is True

    def test_transport_error_returns_empty(self):
        session = FakeSession(error=requests.ConnectionError("refused"))
        assert fetch_page("https://shop.example.com", session=session) == ""

    def test_http_error_returns_empty(self):
        session = FakeSession(get_response=FakeResponse(503))
        assert fetch_page("https://shop.example.com", session=session) == ""

    def test_session_defaults(self):
        session = build_session()
        assert session.max_redirects == 5
        assert session.headers["User-Agent"].startswith("Mozilla/5.0")
