"""
Unit tests for file uploads and downloads.
"""

import pytest
import httpx
from unittest.mock import AsyncMock, patch

from shared.errors import TransferError, TransportError
from service_sync.app.adapters.file_transfer import FileTransferClient, pluginfile_url
from service_sync.app.domain.models import Site
from service_sync.app.sites import SiteRegistry


class TestPluginfileUrl:
    """Test cases for authenticated file URLs."""

    def test_rewrites_and_appends_token(self):
        url = pluginfile_url("https://school.example.org/pluginfile.php/12/mod_resource/content/0/a.pdf", "tok")

        assert url == "https://school.example.org/webservice/pluginfile.php/12/mod_resource/content/0/a.pdf?token=tok"

    def test_existing_query(self):
        url = pluginfile_url("https://school.example.org/webservice/pluginfile.php/1/a.pdf?forcedownload=1", "tok")

        assert url.endswith("a.pdf?forcedownload=1&token=tok")

    def test_existing_token_kept(self):
        url = "https://school.example.org/webservice/pluginfile.php/1/a.pdf?token=abc"

        assert pluginfile_url(url, "tok") == url

    def test_registry_helper(self):
        site = Site(id="site1", url="https://school.example.org", token="tok")

        assert SiteRegistry.pluginfile_url(site, "https://school.example.org/pluginfile.php/1/a.pdf").endswith(
            "/webservice/pluginfile.php/1/a.pdf?token=tok"
        )


class TestFileTransferClient:
    """Test cases for FileTransferClient."""

    @pytest.fixture
    def client(self):
        return FileTransferClient()

    @pytest.fixture
    def site(self):
        return Site(id="site1", url="https://school.example.org", token="tok-123")

    @pytest.mark.asyncio
    async def test_upload(self, client, site, tmp_path):
        source = tmp_path / "essay.txt"
        source.write_bytes(b"my essay")

        with patch('httpx.AsyncClient') as mock_client:
            post = AsyncMock(
                return_value=httpx.Response(
                    200,
                    json=[{"itemid": 1}],
                    request=httpx.Request("POST", "https://school.example.org/webservice/upload.php"),
                )
            )
            mock_client.return_value.__aenter__.return_value.post = post

            await client.upload(str(source), "draft", site)

            args, kwargs = post.call_args
            assert args[0] == "https://school.example.org/webservice/upload.php"
            assert kwargs["data"] == {"token": "tok-123", "filepath": "draft"}
            assert kwargs["files"] == {"file": ("essay.txt", b"my essay")}

    @pytest.mark.asyncio
    async def test_upload_missing_file(self, client, site, tmp_path):
        with pytest.raises(TransferError):
            await client.upload(str(tmp_path / "missing.txt"), "draft", site)

    @pytest.mark.asyncio
    async def test_upload_rejected(self, client, site, tmp_path):
        source = tmp_path / "essay.txt"
        source.write_bytes(b"x")

        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.post = AsyncMock(
                return_value=httpx.Response(
                    200,
                    json={"error": "Quota exceeded"},
                    request=httpx.Request("POST", "https://school.example.org/webservice/upload.php"),
                )
            )

            with pytest.raises(TransferError) as exc_info:
                await client.upload(str(source), "draft", site)

            assert exc_info.value.transient is False

    @pytest.mark.asyncio
    async def test_upload_unreachable(self, client, site, tmp_path):
        source = tmp_path / "essay.txt"
        source.write_bytes(b"x")

        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.post = AsyncMock(
                side_effect=httpx.ConnectError("connection refused")
            )

            with pytest.raises(TransportError):
                await client.upload(str(source), "draft", site)

    @pytest.mark.asyncio
    async def test_download(self, client, site, tmp_path):
        destination = tmp_path / "files" / "notes.pdf"

        with patch('httpx.AsyncClient') as mock_client:
            get = AsyncMock(
                return_value=httpx.Response(
                    200,
                    content=b"%PDF-1.4",
                    request=httpx.Request("GET", "https://school.example.org/webservice/pluginfile.php/3/notes.pdf"),
                )
            )
            mock_client.return_value.__aenter__.return_value.get = get

            local_path = await client.download(
                "https://school.example.org/pluginfile.php/3/notes.pdf", str(destination), site
            )

            assert local_path == str(destination)
            assert destination.read_bytes() == b"%PDF-1.4"
            get.assert_awaited_once_with(
                "https://school.example.org/webservice/pluginfile.php/3/notes.pdf?token=tok-123"
            )

    @pytest.mark.asyncio
    async def test_download_not_found(self, client, site, tmp_path):
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                return_value=httpx.Response(
                    404,
                    content=b"",
                    request=httpx.Request("GET", "https://school.example.org/webservice/pluginfile.php/3/x"),
                )
            )

            with pytest.raises(TransferError):
                await client.download("https://school.example.org/pluginfile.php/3/x", str(tmp_path / "x"), site)

            assert not (tmp_path / "x").exists()
