"""Unit tests for the GitHub release source using a mock transport."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import httpx
import pytest

from rops.errors import NotFound, RateLimited, RemoteError, Unreachable
from rops.release.source import API_URL, GitHubReleaseSource

REPO = "quantmind/devops"
DIGEST = "a" * 64


def _release(tag: str, *, draft: bool = False, published: str = "2024-05-01T10:00:00Z") -> dict:
    return {
        "tag_name": tag,
        "draft": draft,
        "published_at": published,
        "assets": [
            {
                "name": "rops-linux-amd64",
                "url": f"{API_URL}/repos/{REPO}/releases/assets/{tag}",
                "digest": f"sha256:{DIGEST}",
            },
            {"name": "rops-darwin-arm64", "url": f"{API_URL}/assets/darwin-{tag}"},
        ],
    }


def _source(
    handler: Callable[[httpx.Request], httpx.Response], token: str | None = None
) -> GitHubReleaseSource:
    client = httpx.Client(transport=httpx.MockTransport(handler), base_url=API_URL)
    return GitHubReleaseSource(REPO, token=token, client=client)


class TestListReleases:
    """Tests for listing and selecting releases."""

    def test_lists_newest_version_first_and_skips_drafts(self) -> None:
        payload = [_release("v1.2.0"), _release("v1.10.0"), _release("v2.0.0", draft=True)]
        source = _source(lambda request: httpx.Response(200, json=payload))

        releases = source.list_releases()

        assert [r.tag for r in releases] == ["v1.10.0", "v1.2.0"]
        assert releases[0].asset_digests["rops-linux-amd64"] == DIGEST
        assert "rops-darwin-arm64" not in releases[0].asset_digests

    def test_get_latest_is_idempotent(self) -> None:
        payload = [_release("v1.2.0"), _release("v1.3.0")]
        source = _source(lambda request: httpx.Response(200, json=payload))

        assert source.get_latest().tag == "v1.3.0"
        assert source.get_latest() == source.get_latest()

    def test_get_latest_without_releases(self) -> None:
        source = _source(lambda request: httpx.Response(200, json=[]))
        with pytest.raises(NotFound):
            source.get_latest()

    def test_paginates_full_pages(self) -> None:
        pages: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            page = request.url.params["page"]
            pages.append(page)
            if page == "1":
                return httpx.Response(200, json=[_release(f"v1.0.{i}") for i in range(100)])
            return httpx.Response(200, json=[_release("v2.0.0")])

        releases = _source(handler).list_releases()

        assert pages == ["1", "2"]
        assert len(releases) == 101
        assert releases[0].tag == "v2.0.0"


class TestRequestHeaders:
    def test_token_sent_as_bearer(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[])

        _source(handler, token="ghp_secret").list_releases()

        assert seen[0].headers["Authorization"] == "Bearer ghp_secret"
        assert seen[0].headers["User-Agent"] == "quantmind/rops"
        assert seen[0].headers["Accept"] == "application/vnd.github+json"

    def test_no_authorization_without_token(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[])

        _source(handler).list_releases()

        assert "Authorization" not in seen[0].headers


class TestGetByTag:
    def test_tries_without_v_prefix(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/tags/1.4.0"):
                return httpx.Response(200, json=_release("1.4.0"))
            return httpx.Response(404, json={"message": "Not Found"})

        release = _source(handler).get("v1.4.0")

        assert release.tag == "1.4.0"
        assert release.version == "1.4.0"

    def test_missing_tag(self) -> None:
        source = _source(lambda request: httpx.Response(404))
        with pytest.raises(NotFound, match="v9.9.9"):
            source.get("v9.9.9")


class TestErrorMapping:
    """HTTP failures map onto the remote error family."""

    def test_rate_limit_suggests_token_when_unauthenticated(self) -> None:
        source = _source(
            lambda request: httpx.Response(
                403,
                headers={"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": "1700000000"},
            )
        )

        with pytest.raises(RateLimited) as excinfo:
            source.list_releases()

        assert excinfo.value.authenticated is False
        assert "GITHUB_TOKEN" in (excinfo.value.details or "")
        assert excinfo.value.reset_at is not None
        assert int(excinfo.value.reset_at.timestamp()) == 1700000000

    def test_429_with_token(self) -> None:
        source = _source(lambda request: httpx.Response(429), token="ghp_secret")

        with pytest.raises(RateLimited) as excinfo:
            source.list_releases()

        assert excinfo.value.authenticated is True
        assert excinfo.value.details is None

    def test_plain_403_is_remote_error(self) -> None:
        source = _source(lambda request: httpx.Response(403, text="forbidden"))

        with pytest.raises(RemoteError) as excinfo:
            source.list_releases()
        assert not isinstance(excinfo.value, RateLimited)

    def test_server_error_is_unreachable(self) -> None:
        source = _source(lambda request: httpx.Response(502))
        with pytest.raises(Unreachable):
            source.list_releases()

    def test_transport_error_is_unreachable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(Unreachable):
            _source(handler).list_releases()


class TestDownload:
    def test_streams_asset_to_file(self, tmp_path: Path) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=b"\x7fELF" + b"\0" * 100)

        destination = tmp_path / "rops.download"
        written = _source(handler).download(f"{API_URL}/assets/1", destination)

        assert written == 104
        assert destination.read_bytes().startswith(b"\x7fELF")
        assert seen[0].headers["Accept"] == "application/octet-stream"

    def test_download_not_found(self, tmp_path: Path) -> None:
        source = _source(lambda request: httpx.Response(404))
        with pytest.raises(NotFound):
            source.download(f"{API_URL}/assets/1", tmp_path / "out")
