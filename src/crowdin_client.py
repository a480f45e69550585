"""Async client for the parts of the Crowdin REST API v2 the pre-translation workflow uses."""
import logging
from typing import Any, Dict, Optional

import httpx
import jsonschema
from aiolimiter import AsyncLimiter

DEFAULT_BASE_URL = "https://api.crowdin.com/api/v2"
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_REQUESTS_PER_SECOND = 10

# Crowdin wraps every payload in {"data": {...}}. Only the fields the workflow
# reads are required.
STORAGE_SCHEMA = {
    "type": "object",
    "properties": {
        "data": {
            "type": "object",
            "properties": {"id": {"type": "integer"}},
            "required": ["id"],
        }
    },
    "required": ["data"],
}

PRE_TRANSLATION_SCHEMA = {
    "type": "object",
    "properties": {
        "data": {
            "type": "object",
            "properties": {
                "identifier": {"type": "string"},
                "status": {"type": "string"},
                "progress": {"type": "integer"},
            },
            "required": ["identifier", "status"],
        }
    },
    "required": ["data"],
}

BUILD_SCHEMA = {
    "type": "object",
    "properties": {
        "data": {
            "type": "object",
            "properties": {"url": {"type": "string"}},
            "required": ["url"],
        }
    },
    "required": ["data"],
}

FILE_SCHEMA = {
    "type": "object",
    "properties": {"data": {"type": "object"}},
    "required": ["data"],
}


class CrowdinAPIError(Exception):
    """Raised when a Crowdin call fails or returns a payload we cannot use."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CrowdinClient:
    """
    Thin async wrapper around the Crowdin storage, source file, pre-translation
    and build endpoints.

    Built translation files are downloaded from pre-signed URLs that must not
    receive the Crowdin bearer token, so downloads go through a second,
    unauthenticated client.
    """

    def __init__(
            self,
            token: str,
            base_url: str = DEFAULT_BASE_URL,
            timeout: float = DEFAULT_TIMEOUT,
            max_requests_per_second: int = DEFAULT_MAX_REQUESTS_PER_SECOND,
            transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        if not token:
            raise ValueError("A Crowdin API token is required")
        self.base_url = base_url.rstrip("/")
        self._api = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )
        self._downloads = httpx.AsyncClient(timeout=timeout, transport=transport, follow_redirects=True)
        self._rate_limiter = AsyncLimiter(max_requests_per_second, 1)

    async def __aenter__(self) -> "CrowdinClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._api.aclose()
        await self._downloads.aclose()

    async def _request(
            self,
            method: str,
            endpoint: str,
            schema: Dict[str, Any],
            **kwargs: Any
    ) -> Dict[str, Any]:
        """Send an API request, check the status and validate the JSON payload against ``schema``."""
        async with self._rate_limiter:
            try:
                response = await self._api.request(method, endpoint, **kwargs)
            except httpx.HTTPError as e:
                raise CrowdinAPIError(f"{method} {endpoint} failed: {e}") from e

        if response.is_error:
            raise CrowdinAPIError(
                f"{method} {endpoint} returned HTTP {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
            jsonschema.validate(instance=payload, schema=schema)
        except (ValueError, jsonschema.ValidationError) as e:
            raise CrowdinAPIError(
                f"Unexpected response from {method} {endpoint}: {e}",
                status_code=response.status_code,
            ) from e
        return payload["data"]

    async def add_storage(self, filename: str, content: str) -> int:
        """Upload raw content to Crowdin storage and return the storage id."""
        data = await self._request(
            "POST",
            "/storages",
            STORAGE_SCHEMA,
            content=content.encode("utf-8"),
            headers={
                "Crowdin-API-FileName": filename,
                "Content-Type": "application/octet-stream",
            },
        )
        return data["id"]

    async def update_or_restore_file(self, project_id: int, file_id: int, storage_id: int) -> Dict[str, Any]:
        """Replace the tracked source file's content with a stored upload."""
        return await self._request(
            "PUT",
            f"/projects/{project_id}/files/{file_id}",
            FILE_SCHEMA,
            json={"storageId": storage_id},
        )

    async def apply_pre_translation(self, project_id: int, body: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request(
            "POST",
            f"/projects/{project_id}/pre-translations",
            PRE_TRANSLATION_SCHEMA,
            json=body,
        )

    async def pre_translation_status(self, project_id: int, pre_translation_id: str) -> Dict[str, Any]:
        return await self._request(
            "GET",
            f"/projects/{project_id}/pre-translations/{pre_translation_id}",
            PRE_TRANSLATION_SCHEMA,
        )

    async def build_project_file_translation(
            self,
            project_id: int,
            file_id: int,
            body: Dict[str, Any]
    ) -> Dict[str, Any]:
        return await self._request(
            "POST",
            f"/projects/{project_id}/translations/builds/files/{file_id}",
            BUILD_SCHEMA,
            json=body,
        )

    async def download(self, url: str) -> str:
        """
        Fetch a built file from its download URL and return the body as text.

        Build exports may start with a UTF-8 byte order mark, which is dropped.
        """
        try:
            response = await self._downloads.get(url)
        except httpx.HTTPError as e:
            raise CrowdinAPIError(f"Download of '{url}' failed: {e}") from e
        if response.is_error:
            raise CrowdinAPIError(
                f"Download of '{url}' returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        logging.debug(f"Downloaded {len(response.content)} bytes from '{url}'.")
        try:
            return response.content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise CrowdinAPIError(f"Download of '{url}' is not UTF-8: {e}") from e
