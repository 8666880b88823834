"""
Supabase Storage object store backend.

Uses the Storage REST API (`<SUPABASE_URL>/storage/v1`) with the
service-role key:

    GET    /object/<bucket>/<key>          download
    POST   /object/<bucket>/<key>          upload (x-upsert: false)
    DELETE /object/<bucket>                remove  {"prefixes": [...]}
    POST   /object/list/<bucket>           list    {"prefix": ...}
    POST   /object/sign/<bucket>/<key>     signed URL {"expiresIn": n}
"""

from __future__ import annotations

from typing import Any, Iterable, List, Optional
from urllib.parse import quote

import requests

from .base import ObjectNotFoundError, ObjectStoreConfig


class SupabaseStorageObjectStore:
    """
    ObjectStore implementation over Supabase Storage.

    config.base_path holds the project URL.
    """

    def __init__(
        self,
        config: ObjectStoreConfig,
        service_key: str,
        *,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        if not config.base_path:
            raise ValueError("SupabaseStorageObjectStore requires a project URL")
        self.config = config
        self.base = config.base_path.rstrip("/") + "/storage/v1"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
        })

    @staticmethod
    def _key(key: str) -> str:
        return quote(key.strip("/"), safe="/")

    def _call(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = f"{self.base}{path}"
        resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        if resp.status_code in (400, 404) and method == "GET":
            # Storage answers 400 {"error": "not_found"} for missing objects.
            raise ObjectNotFoundError(f"Object not found: {path} :: {resp.text[:200]}")
        if resp.status_code == 409:
            raise FileExistsError(f"Object already exists: {path}")
        try:
            resp.raise_for_status()
        except requests.HTTPError as exc:
            raise RuntimeError(
                f"Storage {method} {path} failed: {exc} :: {resp.text[:400]}"
            ) from exc
        return resp

    def _check_writable(self) -> None:
        if self.config.read_only:
            raise PermissionError("ObjectStore is in read-only mode")

    # ------------------------------------------------------------------
    # Core interface
    # ------------------------------------------------------------------

    def download(self, bucket: str, key: str) -> bytes:
        resp = self._call("GET", f"/object/{bucket}/{self._key(key)}")
        return resp.content

    def upload(
        self,
        bucket: str,
        key: str,
        data: bytes,
        *,
        content_type: str = "application/octet-stream",
    ) -> None:
        self._check_writable()
        self._call(
            "POST",
            f"/object/{bucket}/{self._key(key)}",
            data=data,
            headers={"Content-Type": content_type, "x-upsert": "false"},
        )

    def remove(self, bucket: str, keys: Iterable[str]) -> None:
        self._check_writable()
        prefixes = [k.strip("/") for k in keys]
        if not prefixes:
            return
        self._call("DELETE", f"/object/{bucket}", json={"prefixes": prefixes})

    def list(self, bucket: str, prefix: str = "") -> List[str]:
        prefix = prefix.strip("/")
        resp = self._call(
            "POST",
            f"/object/list/{bucket}",
            json={"prefix": prefix, "limit": 1000, "offset": 0},
        )
        names = [item["name"] for item in resp.json() if item.get("id")]
        return sorted(f"{prefix}/{n}" if prefix else n for n in names)

    def create_signed_url(self, bucket: str, key: str, expires_in: int) -> str:
        resp = self._call(
            "POST",
            f"/object/sign/{bucket}/{self._key(key)}",
            json={"expiresIn": int(expires_in)},
        )
        signed = resp.json().get("signedURL") or resp.json().get("signedUrl")
        if not signed:
            raise RuntimeError(f"Storage did not return a signed URL for {bucket}/{key}")
        return f"{self.base}{signed}" if signed.startswith("/") else signed
