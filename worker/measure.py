import logging
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Optional
from urllib.parse import urlsplit

import httpx
from PIL import Image

from common.config import DOWNLOAD_TIMEOUT_SECONDS, TEMP_DIR
from common.errors import ImageDecodeError, ImageFetchError

logger = logging.getLogger(__name__)


@contextmanager
def _no_pixel_limit():
    limit = Image.MAX_IMAGE_PIXELS
    Image.MAX_IMAGE_PIXELS = None
    try:
        yield
    finally:
        Image.MAX_IMAGE_PIXELS = limit


class ImageMeasurer:
    """
    Downloads an image to a temporary file and returns its perimeter,
    2 * (width + height) in pixels. The temporary file is always removed,
    whether the measurement succeeds or not.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        temp_dir: Path = TEMP_DIR,
        timeout: float = DOWNLOAD_TIMEOUT_SECONDS,
    ):
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout), follow_redirects=True)
        self.temp_dir = Path(temp_dir)
        self.temp_dir.mkdir(parents=True, exist_ok=True)

    async def measure(self, url: str) -> int:
        suffix = Path(urlsplit(url).path).suffix[:16]
        tmp = tempfile.NamedTemporaryFile(delete=False, dir=self.temp_dir, suffix=suffix)
        tmp_path = Path(tmp.name)
        try:
            with tmp:
                await self._download(url, tmp)
            width, height = self._dimensions(url, tmp_path)
            return 2 * (width + height)
        finally:
            tmp_path.unlink(missing_ok=True)

    async def _download(self, url: str, dest: IO[bytes]) -> None:
        try:
            async with self.client.stream("GET", url) as response:
                if response.is_error:
                    raise ImageFetchError(url, f"Request failed with status code {response.status_code}")
                async for chunk in response.aiter_bytes():
                    dest.write(chunk)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ImageFetchError(url, str(e) or type(e).__name__) from e
        except OSError as e:
            raise ImageFetchError(url, f"Could not save image: {e}") from e

    @staticmethod
    def _dimensions(url: str, path: Path):
        # Only the header is read, so large images are safe to size
        try:
            with _no_pixel_limit(), Image.open(path) as img:
                return img.size
        except (OSError, ValueError) as e:
            raise ImageDecodeError(url, str(e) or type(e).__name__) from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
