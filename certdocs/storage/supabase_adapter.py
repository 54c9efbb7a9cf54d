import re
from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import quote

import httpx

from certdocs.storage.base import BaseStorageClient
from certdocs.storage.exceptions import StorageError, StorageObjectNotFoundError
from certdocs.storage.models import ListedObject, SignedUrl, StoredObject

_NOT_FOUND_MESSAGE = re.compile(r"not\s*found", re.IGNORECASE)


class SupabaseStorageClient(BaseStorageClient):
    """Object storage adapter for the Supabase Storage REST API."""

    def __init__(
        self,
        *,
        base_url: str,
        service_role_key: str,
        timeout_seconds: int,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("supabase_url is required for storage_backend=supabase")
        self._storage_root = f"{base_url.rstrip('/')}/storage/v1"
        self._client = httpx.Client(
            base_url=self._storage_root,
            headers={
                "Authorization": f"Bearer {service_role_key}",
                "apikey": service_role_key,
            },
            timeout=timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str = "application/pdf",
    ) -> StoredObject:
        response = self._request(
            "POST",
            f"/object/{bucket}/{_quote(path)}",
            content=data,
            headers={"Content-Type": content_type, "x-upsert": "true"},
        )
        self._raise_for_status(response, bucket, path, "upload")
        return StoredObject(bucket=bucket, path=path, size=len(data))

    def download(self, bucket: str, path: str) -> bytes:
        response = self._request("GET", f"/object/{bucket}/{_quote(path)}")
        self._raise_for_status(response, bucket, path, "download")
        return response.content

    def create_signed_url(
        self,
        bucket: str,
        path: str,
        expires_in_seconds: int,
        download_name: str | None = None,
    ) -> SignedUrl:
        response = self._request(
            "POST",
            f"/object/sign/{bucket}/{_quote(path)}",
            json={"expiresIn": expires_in_seconds},
        )
        self._raise_for_status(response, bucket, path, "sign")
        signed_path = self._json(response).get("signedURL")
        if not isinstance(signed_path, str) or not signed_path:
            raise StorageError(f"Storage returned no signed URL for {bucket}/{path}")
        url = f"{self._storage_root}{signed_path}"
        if download_name:
            url += f"&download={quote(download_name)}"
        return SignedUrl(
            url=url,
            bucket=bucket,
            path=path,
            expires_at=datetime.now(UTC) + timedelta(seconds=expires_in_seconds),
        )

    def list_directory(self, bucket: str, directory: str, limit: int) -> list[ListedObject]:
        response = self._request(
            "POST",
            f"/object/list/{bucket}",
            json={
                "prefix": directory,
                "limit": limit,
                "offset": 0,
                "sortBy": {"column": "updated_at", "order": "desc"},
            },
        )
        self._raise_for_status(response, bucket, directory, "list")
        payload = response.json()
        if not isinstance(payload, list):
            raise StorageError(f"Unexpected listing payload for {bucket}/{directory}")
        listed: list[ListedObject] = []
        for item in payload:
            # Folder placeholders come back without an id.
            if not isinstance(item, dict) or not item.get("name") or item.get("id") is None:
                continue
            name = f"{directory}/{item['name']}" if directory else str(item["name"])
            listed.append(ListedObject(name=name, updated_at=_parse_timestamp(item.get("updated_at"))))
        return listed

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise StorageError(f"Storage request failed: {exc}") from exc

    def _raise_for_status(
        self, response: httpx.Response, bucket: str, path: str, action: str
    ) -> None:
        if response.is_success:
            return
        body = self._json(response)
        if _is_not_found(response.status_code, body):
            raise StorageObjectNotFoundError(bucket, path)
        message = body.get("message") or body.get("error") or response.text
        raise StorageError(
            f"Storage {action} failed for {bucket}/{path} "
            f"(HTTP {response.status_code}): {message}"
        )

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        try:
            parsed = response.json()
        except ValueError:
            return {}
        return parsed if isinstance(parsed, dict) else {}


def _quote(path: str) -> str:
    return quote(path.strip("/"), safe="/")


def _is_not_found(status_code: int, body: dict[str, Any]) -> bool:
    # Storage reports missing objects either as HTTP 404 or as HTTP 400
    # carrying statusCode "404" in the body.
    if status_code == 404 or str(body.get("statusCode", "")) == "404":
        return True
    if body.get("error") == "not_found":
        return True
    return bool(_NOT_FOUND_MESSAGE.search(str(body.get("message", ""))))


def _parse_timestamp(raw: object) -> datetime | None:
    if not isinstance(raw, str) or not raw:
        return None
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
