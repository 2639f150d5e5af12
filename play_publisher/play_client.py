from __future__ import annotations
"""
Google Play Android Publisher API Client
Drives one edit through upload, track assignment and commit for a package
"""

from typing import Any, Dict, Optional

import httpx

from play_publisher.auth.service_account import TokenManager
from play_publisher.models import AppEdit, Bundle, Release, Track
from play_publisher.settings import settings
from play_publisher.utils.progress import (
    UploadProgress,
    describe_size,
    file_size,
    iter_file_chunks,
    track_progress,
)

API_PREFIX = "/androidpublisher/v3"
UPLOAD_PREFIX = "/upload/androidpublisher/v3"

RELEASE_TRACK = "internal"
RELEASE_STATUS = "draft"


class ApiError(Exception):
    """Raised when the Publisher API answers with a non-2xx status"""

    def __init__(self, status: int, body: str, method: str = "", path: str = ""):
        super().__init__(f"{method} {path} -> HTTP {status}".strip())
        self.status = status
        self.body = body
        self.method = method
        self.path = path


class PlayPublisherClient:
    """Client for the Android Publisher edits API for a single package"""

    def __init__(
        self,
        package_name: str,
        token_manager: TokenManager,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        chunk_size: Optional[int] = None,
    ):
        self.package_name = package_name
        self.token_manager = token_manager
        self.chunk_size = chunk_size or settings.UPLOAD_CHUNK_SIZE

        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            base_url=base_url or settings.PUBLISHER_BASE_URL,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )

    async def __aenter__(self) -> "PlayPublisherClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    # ============================================================
    # 🔐 REQUEST PLUMBING
    # ============================================================

    def _edit_path(self, edit_id: Optional[str] = None, prefix: str = API_PREFIX) -> str:
        path = f"{prefix}/applications/{self.package_name}/edits"
        if edit_id is not None:
            path = f"{path}/{edit_id}"
        return path

    async def _auth_headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        token = await self.token_manager.get_token()
        headers = {"Authorization": f"Bearer {token.access_token}"}
        if extra:
            headers.update(extra)
        return headers

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """
        Issue one authenticated call and fail on any non-2xx status.
        The token is fetched per call so a mid-transaction refresh is transparent.
        """
        headers = await self._auth_headers(kwargs.pop("headers", None))
        response = await self._http.request(method, path, headers=headers, **kwargs)

        if not response.is_success:
            body = response.text
            print(f"[PLAY ERROR] [PACKAGE: {self.package_name}] {method} {path} -> {response.status_code}")
            print(f"  body: {body}")
            raise ApiError(response.status_code, body, method=method, path=path)

        return response

    # ============================================================
    # 📦 EDIT LIFECYCLE
    # ============================================================

    async def create_edit(self) -> AppEdit:
        response = await self._send("POST", self._edit_path(), json={})
        edit = AppEdit.model_validate(response.json())
        print(f"[PLAY] [PACKAGE: {self.package_name}] Opened edit {edit.id}")
        return edit

    async def upload_bundle(self, edit_id: str, bundle_path: str) -> Bundle:
        """
        Stream an .aab file into the edit without loading it into memory.

        Raises:
            OSError: the bundle cannot be read
            ApiError: the upload was rejected
        """
        total_size = await file_size(bundle_path)
        progress = UploadProgress(total_size, label="bundle upload")

        print(
            f"[PLAY] [PACKAGE: {self.package_name}] Uploading {bundle_path} "
            f"({describe_size(total_size)}) to edit {edit_id}"
        )

        body = track_progress(iter_file_chunks(bundle_path, self.chunk_size), progress)
        response = await self._send(
            "POST",
            f"{self._edit_path(edit_id, prefix=UPLOAD_PREFIX)}/bundles",
            headers={
                "Content-Type": "application/octet-stream",
                "Content-Length": str(total_size),
            },
            content=body,
            timeout=settings.UPLOAD_TIMEOUT_SECONDS,
        )

        bundle = Bundle()
        if response.content:
            try:
                bundle = Bundle.model_validate(response.json())
            except ValueError:
                print(f"[PLAY] [PACKAGE: {self.package_name}] Upload response was not a bundle resource, ignoring")

        print(f"[PLAY] [PACKAGE: {self.package_name}] Bundle uploaded (versionCode={bundle.version_code})")
        return bundle

    async def update_track(self, edit_id: str, version_code: str) -> Track:
        release = Track(
            releases=[Release(status=RELEASE_STATUS, version_codes=[str(version_code)])]
        )
        response = await self._send(
            "PUT",
            f"{self._edit_path(edit_id)}/tracks/{RELEASE_TRACK}",
            json=release.to_wire(),
        )

        print(
            f"[PLAY] [PACKAGE: {self.package_name}] Assigned versionCode {version_code} "
            f"to track '{RELEASE_TRACK}' as {RELEASE_STATUS}"
        )

        try:
            return Track.model_validate(response.json())
        except ValueError:
            return release

    async def commit_edit(self, edit_id: str) -> AppEdit:
        response = await self._send(
            "POST",
            f"{self._edit_path(edit_id)}:commit",
            headers={"Content-Length": "0"},
        )
        edit = AppEdit.model_validate(response.json())
        print(f"[PLAY] [PACKAGE: {self.package_name}] Committed edit {edit.id}")
        return edit

    async def publish(self, bundle_path: str, version_code: str) -> AppEdit:
        """
        Run the full release: create edit -> upload -> assign track -> commit.
        The first failure propagates; an edit opened before it stays uncommitted.
        """
        edit = await self.create_edit()
        await self.upload_bundle(edit.id, bundle_path)
        await self.update_track(edit.id, version_code)
        return await self.commit_edit(edit.id)
