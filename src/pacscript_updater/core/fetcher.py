"""
Source refetching and checksum computation.

Downloads a source artifact once, feeding every requested hash while the
bytes stream in, and removes the file afterwards.
"""

import hashlib
import logging
from pathlib import Path

import aiofiles
import httpx

from pacscript_updater.core.config import UpdaterConfig
from pacscript_updater.core.exceptions import FetchError

logger = logging.getLogger(__name__)

# pacscript checksum array prefix -> hashlib constructor
HASH_ALGORITHMS = {
    "md5": hashlib.md5,
    "sha1": hashlib.sha1,
    "sha224": hashlib.sha224,
    "sha256": hashlib.sha256,
    "sha384": hashlib.sha384,
    "sha512": hashlib.sha512,
    "b2": hashlib.blake2b,
}


class SourceFetcher:
    """Fetches source artifacts over HTTP and returns their digests."""

    def __init__(self, client: httpx.AsyncClient, config: UpdaterConfig):
        self.client = client
        self.config = config

    async def fetch(self, url: str, hash_types: list[str], filename: str | None = None) -> dict[str, str]:
        """Download `url` and return {hashtype: hexdigest} for `hash_types`."""
        unknown = [hashtype for hashtype in hash_types if hashtype not in HASH_ALGORITHMS]
        if unknown:
            raise FetchError(url, f"unsupported hash types {unknown}")
        hashes = {hashtype: HASH_ALGORITHMS[hashtype]() for hashtype in hash_types}

        self.config.work_dir.mkdir(parents=True, exist_ok=True)
        name = Path(filename or url.split("?", 1)[0].rstrip("/").rsplit("/", 1)[-1]).name
        target = self.config.work_dir / (name or "download")

        logger.info(f"Fetching {url}")
        size = 0
        try:
            async with self.client.stream(
                "GET",
                url,
                headers={"User-Agent": self.config.user_agent},
                timeout=self.config.fetch_timeout,
            ) as resp:
                if resp.status_code >= 400:
                    raise FetchError(url, f"HTTP {resp.status_code}")
                async with aiofiles.open(target, "wb") as f:
                    async for chunk in resp.aiter_bytes():
                        await f.write(chunk)
                        size += len(chunk)
                        for digest in hashes.values():
                            digest.update(chunk)
        except httpx.RequestError as e:
            raise FetchError(url, f"{type(e).__name__}: {e}") from e
        finally:
            target.unlink(missing_ok=True)

        logger.debug(f"Fetched {size} bytes from {url}")
        return {hashtype: digest.hexdigest() for hashtype, digest in hashes.items()}
