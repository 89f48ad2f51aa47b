import base64
import os
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx
import logging

logger = logging.getLogger(__name__)


class GitHubContentsClient:
    """Minimal GitHub Contents API client for one JSON document in a repository.

    Environment variables:
    - GITHUB_TOKEN (or GH_TOKEN): token with contents read/write
    - GH_OWNER (or GITHUB_OWNER), GH_REPO (or GITHUB_REPO): repository coordinates
    - GH_BRANCH (or GITHUB_BRANCH): branch, defaults to main
    """

    API_URL = "https://api.github.com"

    def __init__(
        self,
        token: Optional[str] = None,
        owner: Optional[str] = None,
        repo: Optional[str] = None,
        branch: Optional[str] = None,
        timeout_seconds: int = 15,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.token = token or os.getenv("GITHUB_TOKEN") or os.getenv("GH_TOKEN") or ""
        self.owner = owner or os.getenv("GH_OWNER") or os.getenv("GITHUB_OWNER") or ""
        self.repo = repo or os.getenv("GH_REPO") or os.getenv("GITHUB_REPO") or ""
        self.branch = branch or os.getenv("GH_BRANCH") or os.getenv("GITHUB_BRANCH") or "main"
        self.timeout_seconds = timeout_seconds

        missing = []
        if not self.token:
            missing.append("GITHUB_TOKEN")
        if not self.owner:
            missing.append("GH_OWNER")
        if not self.repo:
            missing.append("GH_REPO")
        if missing:
            raise ValueError(f"Missing env vars: {', '.join(missing)}")

        self._client = httpx.Client(
            base_url=self.API_URL,
            headers={
                "Authorization": f"Bearer {self.token}",
                "Accept": "application/vnd.github+json",
            },
            timeout=self.timeout_seconds,
            transport=transport,
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        """Explicitly close the HTTP client."""
        if hasattr(self, "_client"):
            self._client.close()

    def _contents_url(self, path: str) -> str:
        return f"/repos/{self.owner}/{self.repo}/contents/{quote(path, safe='')}"

    def get_file(self, path: str) -> Dict[str, Any]:
        """Read a file from the configured branch.

        Returns:
            Dict with the decoded ``text`` and the blob ``sha`` needed to overwrite it.
        """
        response = self._client.get(self._contents_url(path), params={"ref": self.branch})
        response.raise_for_status()
        file_json = response.json()

        text = base64.b64decode(file_json.get("content") or "").decode("utf-8")
        return {"text": text, "sha": file_json.get("sha"), "path": file_json.get("path", path)}

    def put_file(self, path: str, text: str, sha: Optional[str], message: str) -> Dict[str, Any]:
        """Overwrite a file. GitHub rejects the write with 409 when ``sha`` is stale.

        Returns:
            Dict with the new content ``sha`` and the ``commit`` sha.
        """
        body: Dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(text.encode("utf-8")).decode("ascii"),
            "branch": self.branch,
        }
        if sha:
            body["sha"] = sha

        response = self._client.put(self._contents_url(path), json=body)
        response.raise_for_status()
        result = response.json()

        new_sha = (result.get("content") or {}).get("sha")
        commit_sha = (result.get("commit") or {}).get("sha")
        logger.debug(f"GitHub commit {commit_sha} for {path} (blob {new_sha})")
        return {"sha": new_sha, "commit": commit_sha}
