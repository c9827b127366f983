"""GitHub Releases backend.

Talks to the GitHub REST API with ``httpx``. Transient transport failures are
retried with exponential backoff; HTTP error statuses are reported as
``ReleaseError`` carrying the status code.
"""

from __future__ import annotations

import json
import os
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

import httpx
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from tauri_release.build.models import Artifact, ReleaseData, UpdateManifestRequest
from tauri_release.release.client import asset_name
from tauri_release.release.updater import MANIFEST_NAME, build_manifest
from tauri_release.utils.exceptions import ReleaseError

logger = structlog.get_logger(__name__)

DEFAULT_API_URL = "https://api.github.com"
PAGE_SIZE = 100


def _release_data(payload: Mapping[str, Any]) -> ReleaseData:
    return ReleaseData(
        id=int(payload["id"]),
        upload_url=str(payload.get("upload_url", "")),
        html_url=str(payload.get("html_url", "")),
    )


class GitHubReleaseClient:
    """Creates GitHub releases and uploads assets to them.

    Attributes:
        api_url: Base URL of the REST API (``GITHUB_API_URL`` on GitHub Enterprise)
        token: Token used for authentication, ``GITHUB_TOKEN`` by default
    """

    def __init__(
            self,
            token: Optional[str] = None,
            api_url: Optional[str] = None,
            timeout: float = 60.0,
            transport: Optional[httpx.BaseTransport] = None,
            environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        """Initialize the client.

        Args:
            token: API token; read from ``GITHUB_TOKEN`` when omitted
            api_url: API base URL; read from ``GITHUB_API_URL`` when omitted
            timeout: Request timeout in seconds
            transport: Optional httpx transport, used by tests
            environ: Environment mapping, ``os.environ`` when omitted
        """
        environ = os.environ if environ is None else environ
        self.token = token or environ.get("GITHUB_TOKEN")
        self.api_url = (api_url or environ.get("GITHUB_API_URL") or DEFAULT_API_URL).rstrip("/")

        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        self._client = httpx.Client(
            base_url=self.api_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
            follow_redirects=True,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> GitHubReleaseClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        return self._client.request(method, url, **kwargs)

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request and turn failures into ``ReleaseError``.

        Raises:
            ReleaseError: If GitHub cannot be reached or answers with an error status
        """
        try:
            response = self._send(method, url, **kwargs)
        except httpx.RequestError as e:
            raise ReleaseError(f"Failed to connect to GitHub: {e}") from e

        if response.is_error:
            raise ReleaseError(
                f"GitHub returned error: {response.status_code} - {response.text}",
                status_code=response.status_code,
                url=str(response.request.url),
            )
        return response

    def _paginate(self, url: str) -> Iterator[Dict[str, Any]]:
        page = 1
        while True:
            items = self._request("GET", url, params={"per_page": PAGE_SIZE, "page": page}).json()
            yield from items
            if len(items) < PAGE_SIZE:
                return
            page += 1

    def get_release(self, owner: str, repo: str, release_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/repos/{owner}/{repo}/releases/{release_id}").json()

    def fetch_or_create_release(
            self,
            owner: str,
            repo: str,
            tag_name: str,
            name: Optional[str] = None,
            body: Optional[str] = None,
            commitish: Optional[str] = None,
            draft: bool = False,
            prerelease: bool = False,
    ) -> ReleaseData:
        """Return the release for ``tag_name``, creating it when missing.

        Draft releases are not reachable through the tag endpoint, so when a
        draft is requested the release list is searched instead.
        """
        if draft:
            for release in self._paginate(f"/repos/{owner}/{repo}/releases"):
                if release.get("tag_name") == tag_name and release.get("draft"):
                    logger.info("Found existing draft release", tag=tag_name, release_id=release["id"])
                    return _release_data(release)
        else:
            try:
                release = self._request("GET", f"/repos/{owner}/{repo}/releases/tags/{tag_name}").json()
                logger.info("Found existing release", tag=tag_name, release_id=release["id"])
                return _release_data(release)
            except ReleaseError as e:
                if e.status_code != 404:
                    raise

        payload: Dict[str, Any] = {
            "tag_name": tag_name,
            "name": name or tag_name,
            "body": body or "",
            "draft": draft,
            "prerelease": prerelease,
        }
        if commitish:
            payload["target_commitish"] = commitish

        release = self._request("POST", f"/repos/{owner}/{repo}/releases", json=payload).json()
        logger.info("Created release", tag=tag_name, release_id=release["id"], draft=draft)
        return _release_data(release)

    def _list_assets(self, owner: str, repo: str, release_id: int) -> Dict[str, Dict[str, Any]]:
        assets = self._paginate(f"/repos/{owner}/{repo}/releases/{release_id}/assets")
        return {asset["name"]: asset for asset in assets}

    def _delete_asset(self, owner: str, repo: str, asset: Mapping[str, Any]) -> None:
        logger.info("Deleting existing asset", asset=asset.get("name"))
        self._request("DELETE", f"/repos/{owner}/{repo}/releases/assets/{asset['id']}")

    def _upload_url(self, owner: str, repo: str, release_id: int) -> str:
        template = self.get_release(owner, repo, release_id).get("upload_url", "")
        if not template:
            raise ReleaseError(f"Release {release_id} has no upload URL")
        return template.split("{", 1)[0]

    def _upload(self, upload_url: str, name: str, content: bytes) -> Dict[str, Any]:
        logger.info("Uploading asset", asset=name, size=len(content))
        return self._request(
            "POST",
            upload_url,
            params={"name": name},
            content=content,
            headers={"Content-Type": "application/octet-stream"},
        ).json()

    def upload_assets(
            self, owner: str, repo: str, release_id: int, artifacts: Sequence[Artifact]
    ) -> None:
        """Upload ``artifacts``, replacing assets with the same name."""
        upload_url = self._upload_url(owner, repo, release_id)
        existing = self._list_assets(owner, repo, release_id)

        for artifact in artifacts:
            name = asset_name(artifact)
            if name in existing:
                self._delete_asset(owner, repo, existing[name])
            self._upload(upload_url, name, artifact.path.read_bytes())

    def _download_manifest(self, owner: str, repo: str, asset: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        response = self._request(
            "GET",
            f"/repos/{owner}/{repo}/releases/assets/{asset['id']}",
            headers={"Accept": "application/octet-stream"},
        )
        try:
            manifest = json.loads(response.content)
        except json.JSONDecodeError:
            logger.warning("Existing updater manifest is not valid JSON, replacing it")
            return None
        return manifest if isinstance(manifest, dict) else None

    def upload_update_manifest(self, request: UpdateManifestRequest) -> None:
        """Merge the artifacts of ``request`` into the release's ``latest.json``."""
        owner, repo = request.owner, request.repo
        release = self.get_release(owner, repo, request.release_id)
        tag_name = request.tag_name or release.get("tag_name", "")
        assets = self._list_assets(owner, repo, request.release_id)

        existing = None
        if MANIFEST_NAME in assets:
            existing = self._download_manifest(owner, repo, assets[MANIFEST_NAME])

        def download_url(artifact: Artifact) -> str:
            name = asset_name(artifact)
            uploaded = assets.get(name, {}).get("browser_download_url")
            if uploaded:
                return uploaded
            return f"https://github.com/{owner}/{repo}/releases/download/{tag_name}/{name}"

        manifest = build_manifest(request, download_url, existing)
        if manifest is None:
            return

        if MANIFEST_NAME in assets:
            self._delete_asset(owner, repo, assets[MANIFEST_NAME])
        upload_url = release.get("upload_url", "").split("{", 1)[0]
        if not upload_url:
            raise ReleaseError(f"Release {request.release_id} has no upload URL")
        self._upload(upload_url, MANIFEST_NAME, json.dumps(manifest, indent=2).encode("utf-8"))
