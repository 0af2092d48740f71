"""Tests for the release downloader, served from a local aiohttp test server."""

import io
import os
import zipfile

import aiohttp
import pytest
from aiohttp import web
from aiohttp import test_utils

from tfdriver.errors import DownloadError
from tfdriver.utils import downloader as downloader_module
from tfdriver.utils.downloader import Downloader, binary_name


def _zip_with(member, data=b"#!/bin/sh\necho terraform\n"):
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as archive:
        archive.writestr(member, data)
    return buf.getvalue()


@pytest.fixture(autouse=True)
def fixed_platform(monkeypatch):
    monkeypatch.setattr(downloader_module, "terraform_platform", lambda: "linux_amd64")


class ReleaseServer:
    """Serves registered archives by path, 404 for everything else."""

    def __init__(self) -> None:
        self.archives = {}
        self.requests = []
        self.server = None

    async def _handle(self, request):
        self.requests.append(request.path)
        body = self.archives.get(request.path)
        if body is None:
            return web.Response(status=404, text="Not Found")
        return web.Response(body=body, content_type="application/zip")

    @property
    def base_url(self):
        return str(self.server.make_url("/"))

    def publish(self, version, payload):
        self.archives[f"/{version}/terraform_{version}_linux_amd64.zip"] = payload


@pytest.fixture
async def release_server():
    releases = ReleaseServer()
    app = web.Application()
    app.router.add_get("/{tail:.*}", releases._handle)
    releases.server = test_utils.TestServer(app)
    await releases.server.start_server()
    yield releases
    await releases.server.close()


def test_archive_url():
    url = Downloader().archive_url("0.10.4")
    assert url == (
        "https://releases.hashicorp.com/terraform/0.10.4/terraform_0.10.4_linux_amd64.zip"
    )


def test_archive_url_custom_base():
    url = Downloader(base_url="http://mirror.local/tf/").archive_url("1.5.7", "darwin_arm64")
    assert url == "http://mirror.local/tf/1.5.7/terraform_1.5.7_darwin_arm64.zip"


async def test_download_places_executable(tmp_path, release_server):
    release_server.publish("0.10.4", _zip_with(binary_name()))
    target_dir = str(tmp_path / "bin")

    path = await Downloader(base_url=release_server.base_url).download(target_dir, "0.10.4")

    assert path == os.path.join(target_dir, binary_name())
    assert os.access(path, os.X_OK)
    assert release_server.requests == ["/0.10.4/terraform_0.10.4_linux_amd64.zip"]


async def test_download_with_custom_file_name(tmp_path, release_server):
    release_server.publish("0.10.4", _zip_with(binary_name()))
    downloader = Downloader(base_url=release_server.base_url)

    path = await downloader.download(str(tmp_path), "0.10.4", file_name="tf")

    assert path == os.path.join(str(tmp_path), "tf")
    with open(path, "rb") as f:
        assert f.read().startswith(b"#!/bin/sh")


async def test_missing_release_is_download_error(tmp_path, release_server):
    downloader = Downloader(base_url=release_server.base_url)
    with pytest.raises(DownloadError) as excinfo:
        await downloader.download(str(tmp_path), "1.2.3")
    assert "HTTP 404" in str(excinfo.value)
    assert os.listdir(tmp_path) == []


async def test_given_session_is_reused_and_left_open(tmp_path, release_server):
    release_server.publish("0.10.4", _zip_with(binary_name()))
    async with aiohttp.ClientSession() as session:
        downloader = Downloader(base_url=release_server.base_url, session=session)
        await downloader.download(str(tmp_path / "a"), "0.10.4")
        await downloader.download(str(tmp_path / "b"), "0.10.4")
        assert not session.closed
    assert len(release_server.requests) == 2


@pytest.mark.parametrize("version", ["latest", "0.10", "v0.10.4", ""])
async def test_invalid_version(tmp_path, release_server, version):
    with pytest.raises(DownloadError):
        await Downloader(base_url=release_server.base_url).download(str(tmp_path), version)
    assert release_server.requests == []


async def test_connection_refused_is_wrapped(tmp_path, release_server):
    base_url = release_server.base_url
    await release_server.server.close()

    with pytest.raises(DownloadError) as excinfo:
        await Downloader(base_url=base_url).download(str(tmp_path), "0.10.4")
    assert isinstance(excinfo.value.__cause__, aiohttp.ClientError)


async def test_bad_archive(tmp_path, release_server):
    release_server.publish("0.10.4", b"not a zip")
    with pytest.raises(DownloadError):
        await Downloader(base_url=release_server.base_url).download(str(tmp_path), "0.10.4")


async def test_archive_without_binary(tmp_path, release_server):
    release_server.publish("0.10.4", _zip_with("README.md"))
    with pytest.raises(DownloadError):
        await Downloader(base_url=release_server.base_url).download(str(tmp_path), "0.10.4")
