import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from docconv_cli.api.client import ConversionClient
from docconv_cli.core.session import ConversionSession
from docconv_cli.files.delivery import DownloadTrigger
from docconv_cli.models.config import ConverterConfig
from docconv_cli.models.session import SelectedFile


class FakeConversionService:
    """
    Stand-in for the remote conversion endpoint. Tests set the status, body,
    headers and delay it answers with, and inspect the requests it received.
    """

    def __init__(self):
        self.status = 200
        self.body = b"%PDF-1.4 converted document"
        self.headers: dict[str, str] = {}
        self.delay = 0.0
        self.requests: list[dict[str, dict]] = []
        self.url = ""

    async def handle_convert(self, request: web.Request) -> web.Response:
        fields = {}
        reader = await request.multipart()
        async for part in reader:
            content = await part.read()
            fields[part.name] = {"filename": part.filename, "content": bytes(content)}
        self.requests.append(fields)

        if self.delay:
            await asyncio.sleep(self.delay)
        return web.Response(status=self.status, body=self.body, headers=self.headers)

    async def handle_root(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "running"})


@pytest.fixture
async def service():
    """A running fake conversion service."""
    fake = FakeConversionService()
    app = web.Application()
    app.router.add_post("/convert", fake.handle_convert)
    app.router.add_get("/", fake.handle_root)

    server = TestServer(app)
    await server.start_server()
    fake.url = str(server.make_url("/convert"))
    yield fake
    await server.close()


@pytest.fixture
def download_dir(tmp_path):
    return tmp_path / "downloads"


@pytest.fixture
def config(service, download_dir):
    return ConverterConfig(
        endpoint_url=service.url,
        output_dir=str(download_dir),
        timeout_seconds=5,
    )


@pytest.fixture
async def session(config):
    """A session wired to the fake service, saving into download_dir."""
    client = ConversionClient(config)
    yield ConversionSession(client, DownloadTrigger(config.output_dir, config.overwrite))
    await client.close()


@pytest.fixture
def docx_file():
    return SelectedFile(name="report.docx", content=b"PK\x03\x04 fake docx body")


@pytest.fixture
def pdf_file():
    return SelectedFile(name="report.pdf", content=b"%PDF-1.4 fake pdf body")
