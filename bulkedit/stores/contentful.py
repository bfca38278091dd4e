"""Record store backed by the Contentful Content Management API."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ..contracts import Record, RecordPage, RecordRef, RecordSys
from ..errors import StoreError
from .base import BaseRecordStore

logger = logging.getLogger(__name__)

CONTENT_TYPE = "application/vnd.contentful.management.v1+json"


def record_from_api(data: Dict[str, Any]) -> Record:
    """Translate a management API entry payload into a :class:`Record`."""
    sys = data["sys"]
    content_type = sys.get("contentType", {}).get("sys", {}).get("id")
    return Record(
        sys=RecordSys(
            id=sys["id"],
            version=sys.get("version", 1),
            published_version=sys.get("publishedVersion"),
            archived_version=sys.get("archivedVersion"),
            content_type=content_type,
        ),
        fields=data.get("fields") or {},
    )


class ContentfulRecordStore(BaseRecordStore):
    """HTTP client for entries of one Contentful space environment."""

    def __init__(
        self,
        space_id: str,
        access_token: str,
        environment: str = "master",
        base_url: str = "https://api.contentful.com",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not space_id or not access_token:
            raise ValueError("space_id and access_token are required for Contentful")

        self.space_id = space_id
        self.environment = environment
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._access_token = access_token
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._default_locale: Optional[str] = None

    @property
    def environment_url(self) -> str:
        return f"{self.base_url}/spaces/{self.space_id}/environments/{self.environment}"

    async def connect(self) -> None:
        """Create the underlying HTTP client."""
        self._client = httpx.AsyncClient(
            base_url=self.environment_url,
            headers={
                "Authorization": f"Bearer {self._access_token}",
                "Content-Type": CONTENT_TYPE,
            },
            timeout=self.timeout,
            transport=self._transport,
        )

    async def disconnect(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        version: Optional[int] = None,
        **kwargs: Any,
    ) -> Optional[Dict[str, Any]]:
        if not self._client:
            await self.connect()

        headers = kwargs.pop("headers", {})
        if version is not None:
            headers["X-Contentful-Version"] = str(version)

        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise StoreError(
                f"{method} {path} failed with {e.response.status_code}: {e.response.text}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise StoreError(f"{method} {path} failed: {e}") from e

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # ------------------------------------------------------------------
    async def list_records(
        self,
        filter: Dict[str, Any],
        limit: int,
        skip: int,
        select: Optional[str] = None,
    ) -> RecordPage:
        params: Dict[str, Any] = {**filter, "limit": limit, "skip": skip}
        if select:
            params["select"] = select
        data = await self._request("GET", "/entries", params=params)
        return RecordPage(
            total=data["total"],
            skip=data.get("skip", skip),
            limit=data.get("limit", limit),
            items=[RecordRef(id=item["sys"]["id"]) for item in data["items"]],
        )

    async def get_record(self, record_id: str) -> Record:
        return record_from_api(await self._request("GET", f"/entries/{record_id}"))

    async def update_record(self, record: Record) -> Record:
        data = await self._request(
            "PUT",
            f"/entries/{record.id}",
            version=record.sys.version,
            json={"fields": record.fields},
        )
        return record_from_api(data)

    async def publish(self, record: Record) -> Record:
        data = await self._request(
            "PUT", f"/entries/{record.id}/published", version=record.sys.version
        )
        return record_from_api(data)

    async def unpublish(self, record: Record) -> Record:
        data = await self._request(
            "DELETE", f"/entries/{record.id}/published", version=record.sys.version
        )
        return record_from_api(data)

    async def archive(self, record: Record) -> Record:
        data = await self._request(
            "PUT", f"/entries/{record.id}/archived", version=record.sys.version
        )
        return record_from_api(data)

    async def unarchive(self, record: Record) -> Record:
        data = await self._request(
            "DELETE", f"/entries/{record.id}/archived", version=record.sys.version
        )
        return record_from_api(data)

    async def delete(self, record: Record) -> None:
        await self._request("DELETE", f"/entries/{record.id}", version=record.sys.version)

    async def get_default_locale(self) -> str:
        if self._default_locale is None:
            data = await self._request("GET", "/locales")
            default = next(
                (item for item in data["items"] if item.get("default")), None
            )
            if default is None:
                raise StoreError(f"Space {self.space_id} has no default locale")
            self._default_locale = default["code"]
            logger.debug(f"Default locale for space {self.space_id}: {self._default_locale}")
        return self._default_locale
