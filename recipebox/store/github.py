"""Recipe transport backed by a GitHub repository directory."""

import base64
import json
import logging
from typing import Any

import httpx

from recipebox.config import StoreSettings
from recipebox.models import TransportError

logger = logging.getLogger(__name__)

USER_AGENT = "recipebox/0.1 (+https://github.com/etancik/Kuchtik)"


class GitHubTransport:
    """Reads recipes through the contents API and the raw file host.

    ``headers`` are sent with every request, so callers that hold a token can
    pass an ``Authorization`` header; writes need one.
    """

    def __init__(
        self,
        settings: StoreSettings | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.settings = settings or StoreSettings()
        s = self.settings
        self.contents_url = (
            f"{s.github_api_base}/repos/{s.repo_owner}/{s.repo_name}/contents/{s.recipes_dir}"
        )
        self.raw_url = (
            f"{s.github_raw_base}/{s.repo_owner}/{s.repo_name}/{s.branch}/{s.recipes_dir}"
        )
        self.headers = {
            "User-Agent": USER_AGENT,
            "Accept": "application/vnd.github+json",
            **(headers or {}),
        }

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.http_timeout,
                follow_redirects=True,
                headers=self.headers,
            ) as client:
                response = await client.request(method, url, **kwargs)
                response.raise_for_status()
        except httpx.TimeoutException:
            logger.warning("Timeout on %s %s", method, url)
            raise TransportError(None, f"Request timed out: {url}")
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning("HTTP %d on %s %s", status, method, url)
            raise TransportError(status, f"GitHub returned HTTP {status} for {url}")
        except httpx.RequestError as e:
            logger.warning("Request error on %s %s: %s", method, url, e)
            raise TransportError(None, f"Couldn't reach {url}")
        return response

    async def list_files(self) -> list[dict[str, Any]]:
        response = await self._request("GET", self.contents_url)
        files = response.json()
        if not isinstance(files, list):
            raise TransportError(response.status_code, "Recipe directory listing is not a list")
        logger.info("Listed %d entries in %s", len(files), self.contents_url)
        return files

    async def fetch_document(self, identifier: str) -> dict[str, Any]:
        response = await self._request("GET", f"{self.raw_url}/{identifier}")
        return response.json()

    async def fetch_encoded_document(self, identifier: str) -> dict[str, Any]:
        response = await self._request("GET", f"{self.contents_url}/{identifier}")
        return response.json()

    async def document_exists(self, identifier: str) -> bool:
        try:
            await self._request("GET", f"{self.contents_url}/{identifier}")
        except TransportError as e:
            if e.status_code == 404:
                return False
            raise
        return True

    async def _current_sha(self, identifier: str) -> str | None:
        try:
            envelope = await self.fetch_encoded_document(identifier)
        except TransportError as e:
            if e.status_code == 404:
                return None
            raise
        return envelope.get("sha")

    async def write_document(self, identifier: str, content: dict[str, Any]) -> bool:
        """Create or replace ``identifier`` with ``content`` serialized as JSON."""
        body = json.dumps(content, ensure_ascii=False, indent=2) + "\n"
        payload: dict[str, Any] = {
            "message": f"Update recipe {identifier}",
            "content": base64.b64encode(body.encode("utf-8")).decode("ascii"),
            "branch": self.settings.branch,
        }
        sha = await self._current_sha(identifier)
        if sha:
            payload["sha"] = sha
        else:
            payload["message"] = f"Add recipe {identifier}"

        response = await self._request(
            "PUT", f"{self.contents_url}/{identifier}", json=payload
        )
        logger.info("Wrote %s (HTTP %d)", identifier, response.status_code)
        return response.status_code in (200, 201)

    async def delete_document(self, identifier: str) -> bool:
        sha = await self._current_sha(identifier)
        if sha is None:
            logger.info("%s is already absent, nothing to delete", identifier)
            return True

        payload = {
            "message": f"Delete recipe {identifier}",
            "sha": sha,
            "branch": self.settings.branch,
        }
        response = await self._request(
            "DELETE", f"{self.contents_url}/{identifier}", json=payload
        )
        logger.info("Deleted %s (HTTP %d)", identifier, response.status_code)
        return response.status_code == 200
