"""
Conversion Session Tests
========================
Tests for the selection, submission and reset state machine.
"""

import asyncio
import json

import pytest

from docconv_cli.core.interpreter import GENERIC_FAILURE_MESSAGE, SERVER_ERROR_MESSAGE
from docconv_cli.core.session import (
    EXTENSION_MESSAGE,
    NO_FILE_MESSAGE,
    ConversionSession,
)
from docconv_cli.exceptions import (
    DeliveryError,
    FileSelectionError,
    TransportError,
    UploadInProgressError,
)
from docconv_cli.models.session import ConversionResponse, SelectedFile, SessionStatus


class FakeClient:
    """Records calls and replays a canned response or error."""

    def __init__(self, response=None, error=None, progress=()):
        self.response = response or ConversionResponse(status=200, body=b"converted")
        self.error = error
        self.progress = progress
        self.calls = []

    async def convert(self, selected_file, on_progress=None):
        self.calls.append(selected_file)
        for loaded, total in self.progress:
            if on_progress:
                on_progress(loaded, total)
        if self.error:
            raise self.error
        return self.response


class FakeTrigger:
    def __init__(self, tmp_path, error=None):
        self.tmp_path = tmp_path
        self.error = error
        self.deliveries = []

    async def deliver(self, content, filename):
        if self.error:
            raise self.error
        self.deliveries.append((content, filename))
        return self.tmp_path / filename


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def fake_trigger(tmp_path):
    return FakeTrigger(tmp_path)


def make_session(client, trigger):
    return ConversionSession(client, trigger)


class TestSelection:
    """Tests for the file selector operations."""

    def test_initial_state(self, fake_client, fake_trigger):
        session = make_session(fake_client, fake_trigger)
        assert session.status is SessionStatus.IDLE
        assert session.selected_file is None
        assert session.progress_percent == 0
        assert session.message == ""

    def test_select_file_replaces_previous(self, fake_client, fake_trigger, docx_file, pdf_file):
        session = make_session(fake_client, fake_trigger)
        session.select_file(docx_file)
        session.select_file(pdf_file)
        assert session.selected_file is pdf_file

    def test_select_file_does_not_validate(self, fake_client, fake_trigger):
        """Any file can be selected; validation waits for submit()."""
        session = make_session(fake_client, fake_trigger)
        session.select_file(SelectedFile(name="notes.txt", content=b"x"))
        assert session.selected_file.name == "notes.txt"
        assert session.message == ""

    def test_select_path(self, fake_client, fake_trigger, tmp_path):
        path = tmp_path / "letter.docx"
        path.write_bytes(b"docx bytes")
        session = make_session(fake_client, fake_trigger)
        session.select_path(path)
        assert session.selected_file.name == "letter.docx"
        assert session.selected_file.size == len(b"docx bytes")

    def test_select_missing_path(self, fake_client, fake_trigger, tmp_path):
        session = make_session(fake_client, fake_trigger)
        with pytest.raises(FileSelectionError):
            session.select_path(tmp_path / "missing.pdf")
        assert session.selected_file is None

    def test_select_dropped_quoted_path(self, fake_client, fake_trigger, tmp_path):
        """A terminal drop pastes the path quoted when it contains spaces."""
        path = tmp_path / "my report.pdf"
        path.write_bytes(b"%PDF")
        session = make_session(fake_client, fake_trigger)
        session.select_dropped(f"'{path}' ")
        assert session.selected_file.name == "my report.pdf"

    def test_select_dropped_nothing(self, fake_client, fake_trigger):
        session = make_session(fake_client, fake_trigger)
        with pytest.raises(FileSelectionError):
            session.select_dropped("   ")

    def test_clear_file(self, fake_client, fake_trigger, docx_file):
        session = make_session(fake_client, fake_trigger)
        session.select_file(docx_file)
        session.clear_file()
        assert session.selected_file is None

    async def test_selection_keeps_terminal_status(self, fake_client, fake_trigger, docx_file, pdf_file):
        """A new selection after Done does not clear the status."""
        session = make_session(fake_client, fake_trigger)
        session.select_file(docx_file)
        await session.submit()
        session.select_file(pdf_file)
        assert session.status is SessionStatus.DONE


class TestValidation:
    """Tests for the checks made before anything is sent."""

    async def test_no_file(self, fake_client, fake_trigger):
        session = make_session(fake_client, fake_trigger)
        status = await session.submit()
        assert status is SessionStatus.IDLE
        assert session.message == NO_FILE_MESSAGE
        assert fake_client.calls == []

    async def test_no_file_keeps_error_status(self, fake_trigger, docx_file):
        client = FakeClient(error=TransportError("down"))
        session = make_session(client, fake_trigger)
        session.select_file(docx_file)
        await session.submit()
        session.clear_file()
        await session.submit()
        assert session.status is SessionStatus.ERROR
        assert session.message == NO_FILE_MESSAGE

    @pytest.mark.parametrize("name", ["notes.txt", "image.PNG", "README", "report.doc", "pdf"])
    async def test_disallowed_extension(self, fake_client, fake_trigger, name):
        session = make_session(fake_client, fake_trigger)
        session.select_file(SelectedFile(name=name, content=b"x"))
        status = await session.submit()
        assert status is SessionStatus.IDLE
        assert session.message == EXTENSION_MESSAGE
        assert fake_client.calls == []

    @pytest.mark.parametrize("name", ["a.docx", "B.DOCX", "c.Pdf", "d.PDF"])
    async def test_allowed_extension_case_insensitive(self, fake_client, fake_trigger, name):
        session = make_session(fake_client, fake_trigger)
        session.select_file(SelectedFile(name=name, content=b"x"))
        await session.submit()
        assert len(fake_client.calls) == 1


class TestSubmit:
    """Tests for submission outcomes."""

    async def test_success(self, fake_client, fake_trigger, docx_file, tmp_path):
        session = make_session(fake_client, fake_trigger)
        session.select_file(docx_file)
        status = await session.submit()

        assert status is SessionStatus.DONE
        assert session.progress_percent == 100
        assert session.saved_path == tmp_path / "report.pdf"
        assert "Conversion finished" in session.message
        assert fake_trigger.deliveries == [(b"converted", "report.pdf")]

    async def test_one_delivery_per_success(self, fake_client, fake_trigger, pdf_file):
        session = make_session(fake_client, fake_trigger)
        session.select_file(pdf_file)
        await session.submit()
        await session.submit()
        assert len(fake_trigger.deliveries) == 2
        assert [name for _, name in fake_trigger.deliveries] == ["report.docx", "report.docx"]

    async def test_service_error_message(self, fake_trigger, docx_file):
        body = json.dumps({"error": "unsupported format"}).encode()
        client = FakeClient(response=ConversionResponse(status=415, body=body))
        session = make_session(client, fake_trigger)
        session.select_file(docx_file)
        status = await session.submit()

        assert status is SessionStatus.ERROR
        assert session.message == "unsupported format"
        assert fake_trigger.deliveries == []

    async def test_unparsable_error_body(self, fake_trigger, docx_file):
        client = FakeClient(response=ConversionResponse(status=500, body=b"<html>oops"))
        session = make_session(client, fake_trigger)
        session.select_file(docx_file)
        status = await session.submit()

        assert status is SessionStatus.ERROR
        assert session.message == SERVER_ERROR_MESSAGE

    async def test_transport_error(self, fake_trigger, docx_file):
        client = FakeClient(error=TransportError("Cannot connect to host"))
        session = make_session(client, fake_trigger)
        session.select_file(docx_file)
        status = await session.submit()

        assert status is SessionStatus.ERROR
        assert session.message == "Cannot connect to host"

    async def test_transport_error_without_description(self, fake_trigger, docx_file):
        client = FakeClient(error=TransportError())
        session = make_session(client, fake_trigger)
        session.select_file(docx_file)
        await session.submit()
        assert session.message == GENERIC_FAILURE_MESSAGE

    async def test_delivery_error(self, fake_client, tmp_path, docx_file):
        trigger = FakeTrigger(tmp_path, error=DeliveryError("disk full"))
        session = make_session(fake_client, trigger)
        session.select_file(docx_file)
        status = await session.submit()
        assert status is SessionStatus.ERROR
        assert session.message == "disk full"
        assert session.saved_path is None

    async def test_unexpected_error_is_contained(self, fake_trigger, docx_file):
        client = FakeClient(error=RuntimeError("bug"))
        session = make_session(client, fake_trigger)
        session.select_file(docx_file)
        status = await session.submit()
        assert status is SessionStatus.ERROR
        assert session.message == GENERIC_FAILURE_MESSAGE

    async def test_retry_after_error(self, fake_trigger, docx_file):
        client = FakeClient(error=TransportError("down"))
        session = make_session(client, fake_trigger)
        session.select_file(docx_file)
        await session.submit()
        client.error = None
        status = await session.submit()
        assert status is SessionStatus.DONE
        assert session.message.startswith("Conversion finished")


class TestProgress:
    """Tests for progress reporting."""

    async def test_progress_sequence(self, fake_trigger, docx_file):
        client = FakeClient(progress=[(10, 40), (20, 40), (30, 40), (40, 40)])
        session = make_session(client, fake_trigger)
        session.select_file(docx_file)
        seen = []
        session.add_listener(lambda s: seen.append((s.status, s.progress_percent)))

        await session.submit()

        uploading = [p for status, p in seen if status is SessionStatus.UPLOADING]
        assert uploading == [0, 25, 50, 75, 100]
        assert seen[-1] == (SessionStatus.DONE, 100)

    async def test_unknown_total_is_ignored(self, fake_trigger, docx_file):
        client = FakeClient(progress=[(10, 40), (20, None), (30, 0)])
        session = make_session(client, fake_trigger)
        session.select_file(docx_file)
        seen = []
        session.add_listener(lambda s: seen.append(s.progress_percent))
        await session.submit()
        assert 25 in seen
        assert all(p in (0, 25, 100) for p in seen)

    async def test_progress_never_decreases(self, fake_trigger, docx_file):
        client = FakeClient(progress=[(30, 40), (10, 40)], error=TransportError("x"))
        session = make_session(client, fake_trigger)
        session.select_file(docx_file)
        seen = []
        session.add_listener(lambda s: seen.append(s.progress_percent))
        await session.submit()
        assert seen == sorted(seen)
        assert session.progress_percent == 75

    async def test_progress_restarts_each_attempt(self, fake_trigger, docx_file):
        client = FakeClient(progress=[(20, 40)])
        session = make_session(client, fake_trigger)
        session.select_file(docx_file)
        await session.submit()
        seen = []
        session.add_listener(lambda s: seen.append(s.progress_percent))
        await session.submit()
        assert seen[0] == 0


class TestReset:
    """Tests for reset()."""

    @pytest.mark.parametrize("error", [None, TransportError("down")])
    async def test_reset_from_terminal_state(self, fake_trigger, docx_file, error):
        client = FakeClient(error=error)
        session = make_session(client, fake_trigger)
        session.select_file(docx_file)
        await session.submit()

        session.reset()

        assert session.status is SessionStatus.IDLE
        assert session.selected_file is None
        assert session.progress_percent == 0
        assert session.message == ""
        assert session.saved_path is None

    def test_reset_from_idle(self, fake_client, fake_trigger, docx_file):
        session = make_session(fake_client, fake_trigger)
        session.select_file(docx_file)
        session.reset()
        assert session.status is SessionStatus.IDLE
        assert session.selected_file is None


class SlowClient(FakeClient):
    def __init__(self):
        super().__init__()
        self.release = asyncio.Event()

    async def convert(self, selected_file, on_progress=None):
        self.calls.append(selected_file)
        await self.release.wait()
        return self.response


class TestSingleFlight:
    """Tests for concurrent submissions."""

    async def test_second_submit_is_rejected(self, fake_trigger, docx_file):
        client = SlowClient()
        session = make_session(client, fake_trigger)
        session.select_file(docx_file)

        first = asyncio.create_task(session.submit())
        await asyncio.sleep(0)
        assert session.status is SessionStatus.UPLOADING

        with pytest.raises(UploadInProgressError):
            await session.submit()

        client.release.set()
        assert await first is SessionStatus.DONE
        assert len(client.calls) == 1

    async def test_reset_discards_in_flight_result(self, fake_trigger, docx_file):
        client = SlowClient()
        session = make_session(client, fake_trigger)
        session.select_file(docx_file)

        task = asyncio.create_task(session.submit())
        await asyncio.sleep(0)
        session.reset()
        client.release.set()
        await task

        assert session.status is SessionStatus.IDLE
        assert session.message == ""
        assert fake_trigger.deliveries == []
