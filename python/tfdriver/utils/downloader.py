"""
tfdriver/utils/downloader.py

Fetches a Terraform release from releases.hashicorp.com and places the binary in a
directory. Used by Terraform.ensure() when the configured binary is missing.

Usage example:
    async with aiohttp.ClientSession() as session:
        path = await Downloader(session=session).download("/opt/bin", "0.10.4")
"""

from __future__ import annotations

import io
import os
import re
import stat
import asyncio
import logging
import platform
import sys
import zipfile
from typing import Optional

import aiofiles
import aiohttp

from tfdriver.errors import DownloadError

logger = logging.getLogger(__name__)

RELEASES_URL = "https://releases.hashicorp.com/terraform"

_VERSION_RE = re.compile(r"^\d+\.\d+\.\d+(?:-[0-9A-Za-z.]+)?$")

_OS_MAP = {
    "linux": "linux",
    "darwin": "darwin",
    "win32": "windows",
    "cygwin": "windows",
    "freebsd": "freebsd",
    "openbsd": "openbsd",
    "sunos": "solaris",
}

_ARCH_MAP = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "arm64": "arm64",
    "aarch64": "arm64",
    "armv7l": "arm",
    "armv6l": "arm",
    "arm": "arm",
}


def terraform_platform() -> str:
    """Return the '<os>_<arch>' suffix HashiCorp uses for release archives.

    Raises:
        DownloadError: If the current platform has no Terraform build.
    """
    os_key = next((k for k in _OS_MAP if sys.platform.startswith(k)), None)
    arch = _ARCH_MAP.get(platform.machine().lower())
    if os_key is None or arch is None:
        raise DownloadError(
            f"Unsupported platform: {sys.platform}/{platform.machine()}"
        )
    return f"{_OS_MAP[os_key]}_{arch}"


def binary_name() -> str:
    return "terraform.exe" if sys.platform.startswith("win") else "terraform"


class Downloader:
    """Downloads and unpacks Terraform release archives."""

    def __init__(
        self,
        base_url: str = RELEASES_URL,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        """
        Args:
            base_url (str): Release index, '<base_url>/<version>/terraform_<version>_<platform>.zip'.
            session (Optional[aiohttp.ClientSession]): Reused if given, otherwise one is
                opened for the download and closed afterwards.
        """
        self.base_url = base_url.rstrip("/")
        self._session = session

    def archive_url(self, version: str, platform_name: Optional[str] = None) -> str:
        plat = platform_name or terraform_platform()
        return f"{self.base_url}/{version}/terraform_{version}_{plat}.zip"

    async def _fetch(self, url: str) -> bytes:
        async def get(session: aiohttp.ClientSession) -> bytes:
            async with session.get(url) as resp:
                if resp.status != 200:
                    raise DownloadError(f"GET {url} returned HTTP {resp.status}")
                return await resp.read()

        if self._session is not None:
            return await get(self._session)
        async with aiohttp.ClientSession() as session:
            return await get(session)

    async def download(
        self, dir: str, version: str, file_name: Optional[str] = None
    ) -> str:
        """Download Terraform `version` and unpack the binary into `dir`.

        Args:
            dir (str): Destination directory (created if missing).
            version (str): A release version such as '0.10.4'.
            file_name (Optional[str]): Name to give the binary. Defaults to the archive member name.

        Returns:
            str: Path of the unpacked, executable binary.

        Raises:
            DownloadError: Invalid version, HTTP/network failure, or a bad archive.
        """
        if not _VERSION_RE.match(version):
            raise DownloadError(f"Invalid terraform version '{version}', expected X.Y.Z")

        url = self.archive_url(version)
        logger.info("Downloading terraform %s from %s", version, url)

        try:
            payload = await self._fetch(url)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise DownloadError(f"Failed to download {url}: {exc}") from exc

        member = binary_name()
        try:
            with zipfile.ZipFile(io.BytesIO(payload)) as archive:
                data = archive.read(member)
        except (zipfile.BadZipFile, KeyError) as exc:
            raise DownloadError(f"Archive from {url} has no '{member}': {exc}") from exc

        target = os.path.join(dir, file_name or member)
        try:
            await asyncio.to_thread(os.makedirs, dir, exist_ok=True)
            async with aiofiles.open(target, "wb") as f:
                await f.write(data)
            mode = os.stat(target).st_mode
            os.chmod(target, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        except OSError as exc:
            raise DownloadError(f"Failed to place terraform binary at {target}: {exc}") from exc

        logger.info("Terraform %s placed at %s", version, target)
        return target
