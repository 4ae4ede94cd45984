"""
File upload/download client.
"""

import asyncio
from pathlib import Path
from urllib.parse import urlencode

import httpx

from shared.errors import TransferError, TransportError
from shared.logging import get_logger
from ..domain.models import Site


def pluginfile_url(url: str, token: str) -> str:
    """Route a pluginfile URL through the token-authenticated endpoint."""
    if "/pluginfile" in url and "/webservice/pluginfile" not in url:
        url = url.replace("/pluginfile", "/webservice/pluginfile", 1)
    if "token=" in url:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{urlencode({'token': token})}"


def _write_file(destination: Path, content: bytes) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_bytes(content)


class FileTransferClient:
    """Uploads local files to a site and downloads site files to disk."""

    def __init__(self, upload_path: str = "/webservice/upload.php", timeout: float = 60.0):
        self.upload_path = upload_path
        self.timeout = timeout
        self.logger = get_logger("sync.file_transfer")

    async def upload(self, local_path: str, remote_target: str, site: Site) -> None:
        """Upload ``local_path`` into ``remote_target`` (a file area path) on ``site``."""
        source = Path(local_path)
        try:
            content = await asyncio.to_thread(source.read_bytes)
        except OSError as exc:
            raise TransferError(f"Cannot read {local_path}", details={"error": str(exc)}) from exc

        url = f"{site.url.rstrip('/')}{self.upload_path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    url,
                    data={"token": site.token, "filepath": remote_target},
                    files={"file": (source.name, content)},
                )
        except httpx.TransportError as exc:
            raise TransportError(f"{site.url} unreachable: {exc}", details={"site_id": site.id}) from exc

        if response.status_code >= 400:
            raise TransferError(
                f"Upload rejected with HTTP {response.status_code}",
                details={"local_path": local_path, "status_code": response.status_code},
            )
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("error"):
            raise TransferError(str(body["error"]), details={"local_path": local_path})

        self.logger.info("File uploaded", local_path=local_path, remote_target=remote_target, site_id=site.id)

    async def download(self, url: str, destination: str, site: Site) -> str:
        """Download ``url`` into ``destination`` and return the local path."""
        target = Path(destination)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                response = await client.get(pluginfile_url(url, site.token))
        except httpx.TransportError as exc:
            raise TransportError(f"{site.url} unreachable: {exc}", details={"site_id": site.id}) from exc

        if response.status_code >= 400:
            raise TransferError(
                f"Download failed with HTTP {response.status_code}",
                details={"url": url, "status_code": response.status_code},
            )

        try:
            await asyncio.to_thread(_write_file, target, response.content)
        except OSError as exc:
            raise TransferError(f"Cannot write {destination}", details={"error": str(exc)}) from exc

        self.logger.info("File downloaded", url=url, destination=str(target), site_id=site.id)
        return str(target)
