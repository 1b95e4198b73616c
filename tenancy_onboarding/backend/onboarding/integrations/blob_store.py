# backend/onboarding/integrations/blob_store.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Protocol

import httpx

from ..config import settings
from ..domain.errors import NotFound, RemoteCallFailed

log = logging.getLogger(__name__)


def is_legacy_url(ref: Optional[str]) -> bool:
    s = (ref or "").strip().lower()
    return s.startswith("http://") or s.startswith("https://")


class BlobStore(Protocol):
    def upload(self, path: str, data: bytes, *, content_type: str) -> str: ...

    def download(self, ref: str) -> bytes: ...

    def delete(self, ref: str) -> None: ...


class LocalBlobStore:
    """
    Filesystem blob store: <root>/<bucket>/<caller path>.

    upload() returns the caller's path unchanged as the stable reference and
    refuses to overwrite an existing object. download() also accepts the
    legacy direct URLs stored by older lease rows and fetches them over HTTP.
    """

    def __init__(self, root: Optional[str] = None, bucket: Optional[str] = None):
        self.bucket = bucket or settings.lease_bucket
        self.base = (Path(root or settings.blob_root) / self.bucket).resolve()

    def _resolve(self, path: str) -> Path:
        rel = str(path or "").strip().lstrip("/")
        if not rel:
            raise RemoteCallFailed("blob path is required")
        p = (self.base / rel).resolve()
        if self.base not in p.parents:
            raise RemoteCallFailed("blob path escapes the bucket", path=rel)
        return p

    def upload(self, path: str, data: bytes, *, content_type: str = "application/octet-stream") -> str:
        p = self._resolve(path)
        if p.exists():
            raise RemoteCallFailed("blob already exists", path=path)
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            p.write_bytes(data)
        except OSError as e:
            log.exception("blob upload failed")
            raise RemoteCallFailed("failed to upload document", path=path) from e
        log.info("blob uploaded %s (%s, %d bytes)", path, content_type, len(data))
        return str(path).lstrip("/")

    def download(self, ref: str) -> bytes:
        if is_legacy_url(ref):
            return self._fetch_url(ref)

        p = self._resolve(ref)
        if not p.exists():
            raise NotFound("document not found", path=ref)
        try:
            return p.read_bytes()
        except OSError as e:
            raise RemoteCallFailed("failed to read document", path=ref) from e

    def delete(self, ref: str) -> None:
        if is_legacy_url(ref):
            return
        p = self._resolve(ref)
        if p.exists():
            p.unlink()

    @staticmethod
    def _fetch_url(url: str) -> bytes:
        try:
            with httpx.Client(timeout=settings.remote_fetch_timeout_seconds, follow_redirects=True) as client:
                r = client.get(url)
                r.raise_for_status()
                return r.content
        except httpx.HTTPError as e:
            raise RemoteCallFailed("failed to fetch legacy document", url=url) from e
