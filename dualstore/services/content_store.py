"""
Content Store Service - Single Responsibility: add payloads to IPFS.

Talks to an IPFS node through its HTTP RPC API (``/api/v0/add``).
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Optional

import httpx

from ..errors import BackendError
from ..protocols import IContentStore, PayloadView

logger = logging.getLogger(__name__)

ADD_ENDPOINT = "/api/v0/add"
DEFAULT_FILENAME = "upload.bin"


def _read_body(payload: PayloadView) -> bytes:
    with payload.open() as f:
        return f.read()


class IPFSContentStore(IContentStore):
    """
    IPFS adapter implementing IContentStore.

    The node computes the content identifier itself; it is returned as-is.
    """

    def __init__(
        self,
        api_url: str,
        pin: bool = True,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._api_url = api_url.rstrip("/")
        self._pin = pin
        self._owns_client = client is None
        # No client-side timeout by default; the orchestrator's deadline bounds the call
        self._client = client or httpx.AsyncClient(base_url=self._api_url, timeout=timeout)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def put(self, payload: PayloadView) -> str:
        """
        Add payload to IPFS.

        Returns:
            Content identifier (CID) reported by the node

        Raises:
            BackendError: classified IPFS failure
        """
        params = {"pin": "true" if self._pin else "false", "cid-version": "0"}
        filename = payload.filename or DEFAULT_FILENAME
        content_type = payload.content_type or "application/octet-stream"

        # httpx reads file objects synchronously; load the body in a worker thread
        body = await asyncio.to_thread(_read_body, payload)
        try:
            response = await self._client.post(
                f"{self._api_url}{ADD_ENDPOINT}",
                params=params,
                files={"file": (filename, body, content_type)},
            )
        except httpx.TimeoutException as e:
            raise BackendError.transient(f"IPFS request timed out: {e}") from e
        except httpx.RequestError as e:
            raise BackendError.transient(f"IPFS request failed: {e}") from e

        if response.status_code == 429 or response.status_code >= 500:
            raise BackendError.transient(
                f"IPFS error {response.status_code}: {self._error_detail(response)}",
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            raise BackendError.permanent(
                f"IPFS error {response.status_code}: {self._error_detail(response)}",
                status_code=response.status_code,
            )

        cid = self._parse_hash(response.text)
        logger.debug("Added %d bytes to IPFS as %s", payload.size, cid)
        return cid

    @staticmethod
    def _parse_hash(body: str) -> str:
        """
        Extract the CID from an ``add`` response.

        The node answers with one JSON object per line (progress/directory
        entries may precede it); the last entry describes the added file.
        """
        entries = []
        for line in body.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                entries.append(json.loads(line))
            except json.JSONDecodeError as e:
                raise BackendError.permanent(f"Malformed IPFS response: {line[:200]}") from e

        for entry in reversed(entries):
            if isinstance(entry, dict) and entry.get("Hash"):
                return str(entry["Hash"])
        raise BackendError.permanent("No hash in IPFS response")

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return response.text[:500]
        if isinstance(data, dict) and data.get("Message"):
            return str(data["Message"])
        return str(data)
