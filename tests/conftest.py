import io

import httpx
import pytest
from PIL import Image

from common.job_schema import StoreInfo
from common.stores import StoreLookup
from worker.measure import ImageMeasurer


def _png(width, height):
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color=(200, 30, 30)).save(buf, format="PNG")
    return buf.getvalue()


class FakeMeasurer:
    """Stands in for ImageMeasurer: fixed perimeters, scripted failures, optional gate."""

    def __init__(self, perimeters=None, failures=None, gate=None):
        self.perimeters = perimeters or {}
        self.failures = failures or {}
        self.gate = gate
        self.calls = []
        self.closed = False

    async def measure(self, url):
        self.calls.append(url)
        if self.gate is not None:
            await self.gate.wait()
        if url in self.failures:
            raise self.failures[url]
        return self.perimeters.get(url, 4)

    async def aclose(self):
        self.closed = True


@pytest.fixture
def png_bytes():
    return _png


@pytest.fixture
def fake_measurer():
    return FakeMeasurer


@pytest.fixture
def stores():
    return StoreLookup({
        "RP00001": StoreInfo(store_name="B P STORE", area_code="7100015"),
        "RP00002": StoreInfo(store_name="MONAJ STORE", area_code="7100015"),
    })


@pytest.fixture
def make_measurer(tmp_path):
    """Builds a real ImageMeasurer whose HTTP traffic is served from a dict of url -> bytes."""

    def build(images):
        def handler(request):
            body = images.get(str(request.url))
            if body is None:
                return httpx.Response(404)
            if isinstance(body, Exception):
                raise body
            return httpx.Response(200, content=body)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return ImageMeasurer(client=client, temp_dir=tmp_path)

    return build
