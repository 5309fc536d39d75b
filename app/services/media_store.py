"""Media store adapters.

``upload`` failures are fatal to the request that needs the media. ``delete``
is best effort: it reports an outcome and never raises, because it only runs
while tearing an entity down, where the database row is the source of truth.
"""
import asyncio
import base64
import binascii
import hashlib
import logging
import os
import time
import uuid
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from urllib.parse import urlparse

import aiofiles
import aiofiles.os
import httpx

from app.core.errors import AppError, MediaDeleteError, MediaUploadError, ValidationError
from app.services.media_input import INVALID_MEDIA_FORMAT, MediaDescriptor, MediaItem, PendingUpload

logger = logging.getLogger(__name__)

MAX_UPLOAD_SIZE = 50 * 1024 * 1024
ALLOWED_EXTENSIONS = {
    "image": {"jpeg", "jpg", "png", "gif"},
    "video": {"mp4", "mov", "avi", "mkv", "webm"},
}
MIME_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "video/mp4": ".mp4",
    "video/quicktime": ".mov",
    "video/x-msvideo": ".avi",
    "video/x-matroska": ".mkv",
    "video/webm": ".webm",
}


def check_size(size: int, max_size: int) -> None:
    if size > max_size:
        raise ValidationError(f"File too large (max {max_size // (1024 * 1024)}MB)")


def encoded_size(data: str) -> int:
    """Decoded byte count of a base64 string, without decoding it."""
    data = data.strip()
    return len(data) * 3 // 4 - data[-2:].count("=")


def extension_of(name: str) -> str:
    ext = os.path.splitext(name)[1].lower()
    if ext.lstrip(".") not in ALLOWED_EXTENSIONS["image"] | ALLOWED_EXTENSIONS["video"]:
        raise ValidationError("Unsupported file type")
    return ext


def extension_for_mime(mime: str) -> str:
    ext = MIME_EXTENSIONS.get(mime.strip().lower())
    if ext is None:
        raise ValidationError("Unsupported file type")
    return ext


@dataclass(frozen=True)
class DeleteOutcome:
    external_id: str
    kind: str
    ok: bool
    reason: str | None = None


class MediaStore(ABC):
    @abstractmethod
    async def upload(
        self, payload: bytes | str, kind: str, folder: str, filename: str | None = None
    ) -> MediaDescriptor:
        """Store ``payload`` and return a durable reference. Raises MediaUploadError."""

    @abstractmethod
    async def destroy(self, external_id: str, kind: str) -> None:
        """Remove stored media. Raises MediaDeleteError."""

    async def delete(self, external_id: str, kind: str = "image") -> DeleteOutcome:
        try:
            await self.destroy(external_id, kind)
        except MediaDeleteError as e:
            logger.warning("Failed to delete %s %s: %s", kind, external_id, e.message)
            return DeleteOutcome(external_id, kind, ok=False, reason=e.message)
        except Exception as e:
            logger.exception("Unexpected error deleting %s %s", kind, external_id)
            return DeleteOutcome(external_id, kind, ok=False, reason=str(e) or e.__class__.__name__)
        return DeleteOutcome(external_id, kind, ok=True)


class LocalMediaStore(MediaStore):
    """Keeps files on disk under ``upload_dir``; served by the app at ``base_url``.

    Remote URLs are only fetched from ``remote_hosts``; with none configured
    remote payloads are refused.
    """

    def __init__(
        self,
        upload_dir: str,
        base_url: str = "/uploads",
        timeout: float = 30.0,
        max_size: int = MAX_UPLOAD_SIZE,
        remote_hosts: list[str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.upload_dir = os.path.abspath(upload_dir)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_size = max_size
        self.remote_hosts = {h.lower() for h in remote_hosts or []}
        self.transport = transport

    async def upload(self, payload, kind, folder, filename=None):
        content, ext = await self._read_payload(payload, filename)

        name = f"{uuid.uuid4()}{ext}"
        external_id = f"{folder.strip('/')}/{name}"
        filepath = self._path_for(external_id)
        if filepath is None:
            raise MediaUploadError("Invalid upload folder")

        try:
            os.makedirs(os.path.dirname(filepath), exist_ok=True)
            async with aiofiles.open(filepath, "wb") as f:
                await f.write(content)
        except OSError as e:
            raise MediaUploadError(f"File upload failed: {e.strerror or e}") from e

        return MediaDescriptor(external_id=external_id, url=f"{self.base_url}/{external_id}", kind=kind)

    async def destroy(self, external_id, kind):
        filepath = self._path_for(external_id)
        if filepath is None:
            raise MediaDeleteError(f"Refusing to delete outside upload dir: {external_id}")
        try:
            await aiofiles.os.remove(filepath)
        except FileNotFoundError as e:
            raise MediaDeleteError(f"File not found: {external_id}") from e
        except OSError as e:
            raise MediaDeleteError(f"File delete failed: {e.strerror or e}") from e

    def _path_for(self, external_id: str) -> str | None:
        path = os.path.abspath(os.path.join(self.upload_dir, external_id))
        if os.path.commonpath([path, self.upload_dir]) != self.upload_dir or path == self.upload_dir:
            return None
        return path

    async def _read_payload(self, payload: bytes | str, filename: str | None) -> tuple[bytes, str]:
        if isinstance(payload, bytes):
            check_size(len(payload), self.max_size)
            return payload, extension_of(filename or "")

        if payload.startswith("data:"):
            header, _, data = payload.partition(",")
            ext = extension_for_mime(header[5:].split(";")[0])
            check_size(encoded_size(data), self.max_size)
            try:
                content = base64.b64decode(data, validate=True)
            except (binascii.Error, ValueError) as e:
                raise MediaUploadError("Invalid base64 media payload") from e
            return content, ext

        if payload.startswith(("http://", "https://")):
            return await self._fetch(payload)

        raise MediaUploadError("Unsupported media payload")

    async def _fetch(self, url: str) -> tuple[bytes, str]:
        parsed = urlparse(url)
        if (parsed.hostname or "").lower() not in self.remote_hosts:
            raise ValidationError("Remote media host is not allowed", kind=INVALID_MEDIA_FORMAT)
        ext = extension_of(parsed.path)

        chunks, size = [], 0
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                async with client.stream("GET", url) as resp:
                    resp.raise_for_status()
                    async for chunk in resp.aiter_bytes():
                        size += len(chunk)
                        check_size(size, self.max_size)
                        chunks.append(chunk)
        except httpx.HTTPError as e:
            raise MediaUploadError(f"Could not fetch media: {e}") from e
        return b"".join(chunks), ext


class CloudinaryMediaStore(MediaStore):
    """Signed calls to the Cloudinary upload API."""

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        api_url: str = "https://api.cloudinary.com/v1_1",
        timeout: float = 30.0,
        max_size: int = MAX_UPLOAD_SIZE,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.max_size = max_size
        self.transport = transport

    def sign(self, params: dict) -> str:
        to_sign = "&".join(f"{k}={v}" for k, v in sorted(params.items()) if v not in (None, ""))
        return hashlib.sha1(f"{to_sign}{self.api_secret}".encode()).hexdigest()

    def _signed(self, params: dict) -> dict:
        return {**params, "api_key": self.api_key, "signature": self.sign(params)}

    def _endpoint(self, kind: str, action: str) -> str:
        return f"{self.api_url}/{self.cloud_name}/{kind}/{action}"

    async def _post(self, url: str, data: dict, files: dict | None = None) -> dict:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            resp = await client.post(url, data=data, files=files)
        body = resp.json()
        if resp.status_code >= 400:
            message = body.get("error", {}).get("message") if isinstance(body, dict) else None
            raise httpx.HTTPStatusError(message or f"HTTP {resp.status_code}", request=resp.request, response=resp)
        return body

    async def upload(self, payload, kind, folder, filename=None):
        if isinstance(payload, bytes):
            check_size(len(payload), self.max_size)
        elif payload.startswith("data:"):
            check_size(encoded_size(payload.partition(",")[2]), self.max_size)

        data = self._signed({"folder": folder, "timestamp": int(time.time())})
        files = None
        if isinstance(payload, bytes):
            files = {"file": (filename or "upload", payload)}
        else:
            data["file"] = payload

        try:
            result = await self._post(self._endpoint(kind, "upload"), data, files)
        except (httpx.HTTPError, ValueError) as e:
            raise MediaUploadError(f"File upload failed: {e}") from e

        if not result.get("public_id") or not result.get("secure_url"):
            raise MediaUploadError("File upload failed: incomplete response from media store")
        return MediaDescriptor(external_id=result["public_id"], url=result["secure_url"], kind=kind)

    async def destroy(self, external_id, kind):
        data = self._signed({"public_id": external_id, "timestamp": int(time.time())})
        try:
            result = await self._post(self._endpoint(kind, "destroy"), data)
        except (httpx.HTTPError, ValueError) as e:
            raise MediaDeleteError(str(e)) from e
        if result.get("result") != "ok":
            raise MediaDeleteError(f"Media store answered {result.get('result')!r}")


def build_media_store(settings) -> MediaStore:
    if settings.MEDIA_BACKEND == "cloudinary":
        if not (settings.CLOUDINARY_CLOUD_NAME and settings.CLOUDINARY_API_KEY and settings.CLOUDINARY_API_SECRET):
            raise ValueError("Cloudinary backend needs CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY and CLOUDINARY_API_SECRET")
        return CloudinaryMediaStore(
            cloud_name=settings.CLOUDINARY_CLOUD_NAME,
            api_key=settings.CLOUDINARY_API_KEY,
            api_secret=settings.CLOUDINARY_API_SECRET,
            api_url=settings.CLOUDINARY_API_URL,
            timeout=settings.MEDIA_TIMEOUT_SECONDS,
            max_size=settings.MAX_UPLOAD_SIZE,
        )
    if settings.MEDIA_BACKEND == "local":
        return LocalMediaStore(
            settings.UPLOAD_DIR,
            timeout=settings.MEDIA_TIMEOUT_SECONDS,
            max_size=settings.MAX_UPLOAD_SIZE,
            remote_hosts=settings.media_remote_hosts,
        )
    raise ValueError(f"Unknown MEDIA_BACKEND: {settings.MEDIA_BACKEND}")


def _folder_for(folder: str | Mapping[str, str], kind: str) -> str:
    if isinstance(folder, str):
        return folder
    return folder[kind]


async def discard_media(store: MediaStore, descriptors: list[MediaDescriptor]) -> list[DeleteOutcome]:
    outcomes = await asyncio.gather(*(store.delete(d.external_id, d.kind) for d in descriptors))
    return list(outcomes)


async def upload_all(
    store: MediaStore, pending: list[PendingUpload], folder: str | Mapping[str, str]
) -> list[MediaDescriptor]:
    """Upload every payload concurrently; all succeed or none stay stored."""
    if not pending:
        return []

    results = await asyncio.gather(
        *(store.upload(p.payload, p.kind, _folder_for(folder, p.kind), p.filename) for p in pending),
        return_exceptions=True,
    )
    uploaded = [r for r in results if isinstance(r, MediaDescriptor)]
    failures = [r for r in results if isinstance(r, BaseException)]
    if not failures:
        return uploaded

    for failure in failures:
        logger.error("Media upload failed: %s", failure)
    if uploaded:
        logger.warning("Rolling back %d uploaded file(s) after failed batch", len(uploaded))
        await discard_media(store, uploaded)

    first = failures[0]
    if isinstance(first, AppError):
        raise first
    raise MediaUploadError() from first


async def resolve_media(
    store: MediaStore, items: list[MediaItem], folder: str | Mapping[str, str]
) -> tuple[list[MediaDescriptor], list[MediaDescriptor]]:
    """Upload pending items.

    Returns all descriptors in the original order, and the subset uploaded by
    this call (the ones to discard if the entity cannot be saved).
    """
    pending = [item for item in items if isinstance(item, PendingUpload)]
    uploaded = await upload_all(store, pending, folder)
    fresh = iter(uploaded)
    media = [next(fresh) if isinstance(item, PendingUpload) else item for item in items]
    return media, uploaded
