"""GitHub Releases client.

Lists and fetches releases of rops itself and streams release assets.
No retries happen here: transient failures surface as ``Unreachable`` or
``RateLimited`` and the orchestrator decides whether to back off and retry.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

import httpx
from loguru import logger

from rops.errors import NotFound, RateLimited, RemoteError, Unreachable

from .models import Release
from .versioning import latest_release, sort_releases

API_URL = "https://api.github.com"
USER_AGENT = "quantmind/rops"
PER_PAGE = 100
MAX_PAGES = 5
_SHA256_RE = re.compile(r"[0-9a-f]{64}")


class ReleaseSource(Protocol):
    """Source of rops releases."""

    def list_releases(self) -> list[Release]: ...

    def get_latest(self) -> Release: ...

    def get(self, tag: str) -> Release: ...

    def download(self, url: str, destination: Path) -> int: ...


class GitHubReleaseSource:
    """Fetch release metadata and assets from the GitHub Releases API."""

    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        repository: str,
        *,
        token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.Client | None = None,
    ) -> None:
        """Initialize the release source.

        Args:
            repository: ``owner/name`` of the GitHub repository publishing rops
            token: Optional bearer token, raises the API rate limit
            timeout: Per-request timeout in seconds
            client: Pre-built client (tests inject one with a mock transport)
        """
        self.repository = repository
        self.authenticated = bool(token)

        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": USER_AGENT,
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._client = client or httpx.Client(
            base_url=API_URL, timeout=timeout, follow_redirects=True
        )
        self._client.headers.update(headers)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> GitHubReleaseSource:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # =========================================================================
    # Release queries
    # =========================================================================

    def list_releases(self) -> list[Release]:
        """All published (non-draft) releases, newest version first."""
        releases: list[Release] = []
        for page in range(1, MAX_PAGES + 1):
            response = self._get(
                f"/repos/{self.repository}/releases",
                params={"per_page": PER_PAGE, "page": page},
            )
            payload = response.json()
            if not isinstance(payload, list):
                raise RemoteError("Unexpected response listing releases")
            releases.extend(
                release
                for release in (self._parse_release(entry) for entry in payload)
                if release is not None
            )
            if len(payload) < PER_PAGE:
                break

        logger.debug(f"Found {len(releases)} release(s) of {self.repository}")
        return sort_releases(releases)

    def get_latest(self) -> Release:
        """The release with the highest version.

        Raises:
            NotFound: If the repository has no versioned releases
        """
        latest = latest_release(self.list_releases())
        if latest is None:
            raise NotFound(f"No releases found for {self.repository}")
        return latest

    def get(self, tag: str) -> Release:
        """Fetch a release by tag, with or without a leading ``v``.

        Raises:
            NotFound: If no release has that tag
        """
        candidates = [tag]
        alternate = tag[1:] if tag.lower().startswith("v") else f"v{tag}"
        candidates.append(alternate)

        for candidate in candidates:
            try:
                response = self._get(f"/repos/{self.repository}/releases/tags/{candidate}")
            except NotFound:
                continue
            release = self._parse_release(response.json())
            if release is not None:
                return release
        raise NotFound(f"Release '{tag}' not found in {self.repository}")

    # =========================================================================
    # Asset download
    # =========================================================================

    def download(self, url: str, destination: Path) -> int:
        """Stream an asset into ``destination``.

        Args:
            url: Asset API URL
            destination: File to write (truncated first)

        Returns:
            Number of bytes written
        """
        logger.info(f"Downloading {url}")
        written = 0
        try:
            with self._client.stream(
                "GET", url, headers={"Accept": "application/octet-stream"}
            ) as response:
                if response.is_error:
                    response.read()
                self._raise_for_status(response, url)
                with destination.open("wb") as f:
                    for chunk in response.iter_bytes():
                        f.write(chunk)
                        written += len(chunk)
        except httpx.TimeoutException as e:
            raise Unreachable(f"Timed out downloading {url}", details=str(e)) from e
        except httpx.TransportError as e:
            raise Unreachable(f"Network error downloading {url}", details=str(e)) from e
        logger.debug(f"Downloaded {written} bytes to {destination}")
        return written

    # =========================================================================
    # Internals
    # =========================================================================

    def _get(self, path: str, params: dict[str, Any] | None = None) -> httpx.Response:
        try:
            response = self._client.get(path, params=params)
        except httpx.TimeoutException as e:
            raise Unreachable(f"Timed out contacting GitHub ({path})", details=str(e)) from e
        except httpx.TransportError as e:
            raise Unreachable(f"Unable to reach GitHub ({path})", details=str(e)) from e
        self._raise_for_status(response, path)
        return response

    def _raise_for_status(self, response: httpx.Response, what: str) -> None:
        status = response.status_code
        if status < 400:
            return
        if status == 404:
            raise NotFound(f"Not found: {what}")
        if status == 429 or (
            status == 403 and response.headers.get("x-ratelimit-remaining") == "0"
        ):
            raise RateLimited(
                "GitHub API rate limit exceeded",
                details=None
                if self.authenticated
                else "Set GITHUB_TOKEN (e.g. in .env) to raise the rate limit.",
                authenticated=self.authenticated,
                reset_at=_parse_reset(response.headers.get("x-ratelimit-reset")),
            )
        if status >= 500:
            raise Unreachable(f"GitHub returned {status} for {what}")
        raise RemoteError(f"GitHub returned {status} for {what}", details=response.text[:500])

    def _parse_release(self, payload: Any) -> Release | None:
        if not isinstance(payload, dict) or payload.get("draft"):
            return None
        tag = str(payload.get("tag_name") or "").strip()
        if not tag:
            return None

        asset_urls: dict[str, str] = {}
        asset_digests: dict[str, str] = {}
        for asset in payload.get("assets") or []:
            name = str(asset.get("name") or "").strip().lower()
            url = asset.get("url") or asset.get("browser_download_url")
            if not name or not url:
                continue
            asset_urls[name] = str(url)
            digest = _extract_digest(asset)
            if digest:
                asset_digests[name] = digest

        return Release(
            tag=tag,
            asset_urls=asset_urls,
            published_at=_parse_timestamp(payload.get("published_at")),
            asset_digests=asset_digests,
        )


def _extract_digest(asset: dict[str, Any]) -> str | None:
    digest = asset.get("digest")
    if not isinstance(digest, str) or ":" not in digest:
        return None
    algorithm, value = digest.split(":", 1)
    value = value.strip().lower()
    if algorithm.strip().lower() != "sha256" or not _SHA256_RE.fullmatch(value):
        return None
    return value


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def _parse_reset(value: str | None) -> datetime | None:
    if not value or not value.isdigit():
        return None
    return datetime.fromtimestamp(int(value), tz=UTC)
