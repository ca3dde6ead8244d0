"""Upload of local asset files to a GitHub repository used as CDN origin."""

from __future__ import annotations

import base64
import logging
from pathlib import Path
from typing import Optional

import requests
from filetype import guess

from .config import GithubConfig
from .utils import file_extension

logger = logging.getLogger("asset_cdn")

RASTER_IMAGE_TYPES = {"png", "jpg", "jpeg", "gif", "webp"}
FONT_TYPES = {"woff", "woff2", "ttf", "otf"}


def content_matches_extension(data: bytes, extension: str) -> bool:
    """Check a file signature against its extension for binary asset types."""
    extension = extension.lower()
    kind = guess(data)
    if extension in RASTER_IMAGE_TYPES:
        return kind is not None and kind.mime.startswith("image/")
    if extension in FONT_TYPES:
        return kind is None or "font" in kind.mime
    return True


class GithubUploader:
    """Push files into a repository through the GitHub contents API."""

    def __init__(self, config: GithubConfig, session: Optional[requests.Session] = None) -> None:
        self.config = config
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {config.token}",
                "Accept": "application/vnd.github+json",
            }
        )

    def _contents_url(self, remote_path: str) -> str:
        api = self.config.api_url.rstrip("/")
        return f"{api}/repos/{self.config.repository}/contents/{remote_path.lstrip('/')}"

    def _existing_sha(self, remote_path: str) -> Optional[str]:
        resp = self.session.get(
            self._contents_url(remote_path),
            params={"ref": self.config.branch},
            timeout=self.config.timeout,
        )
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        payload = resp.json()
        if isinstance(payload, dict):
            return payload.get("sha")
        return None

    def upload_file(self, local_path: Path, remote_path: str) -> bool:
        """Create or update ``remote_path`` with the bytes of ``local_path``."""
        local_path = Path(local_path)
        try:
            data = local_path.read_bytes()
        except OSError as exc:
            logger.warning("Failed to read %s: %s", local_path, exc)
            return False

        extension = file_extension(remote_path)
        if not content_matches_extension(data, extension):
            logger.warning(
                "Skipping %s: content does not look like a .%s file",
                local_path,
                extension,
            )
            return False

        body = {
            "message": self.config.commit_message.format(path=remote_path),
            "content": base64.b64encode(data).decode("ascii"),
            "branch": self.config.branch,
        }
        try:
            sha = self._existing_sha(remote_path)
            if sha:
                body["sha"] = sha
            resp = self.session.put(
                self._contents_url(remote_path),
                json=body,
                timeout=self.config.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Failed to upload %s to GitHub: %s", remote_path, exc)
            return False
        logger.debug("Uploaded %s to %s", local_path, remote_path)
        return True
