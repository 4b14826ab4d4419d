import json

import pytest

from autodocs.generation_logic.orchestrator import CANCELLED_MESSAGE
from autodocs.generation_logic.stream_orchestrator import _create_stream_event
from autodocs.generation_logic.stream_orchestrator import _stream_session_events
from autodocs.models.documents import SessionRequest
from autodocs.models.session import OrchestratorState

DESCRIPTION = "A task management web app for small teams"


def _request(*selected) -> SessionRequest:
    return SessionRequest(description=DESCRIPTION, projectType="web", selectedDocuments=list(selected))


def test_create_stream_event_is_one_ndjson_line():
    line = _create_stream_event("finished", message="done", payload={"bundle_ready": True})
    assert line.endswith("\n")
    assert json.loads(line) == {"type": "finished", "message": "done", "payload": {"bundle_ready": True}}


@pytest.mark.asyncio
async def test_stream_runs_session_to_finished(api_key, scripted, make_orchestrator):
    orchestrator = make_orchestrator(scripted("# PRD", "# Stack"))
    session = orchestrator.start(_request("prd", "techStack"))

    events = [json.loads(line) async for line in _stream_session_events(orchestrator, session)]

    assert events[0]["type"] == "session_started"
    assert events[-1]["type"] == "finished"
    assert events[-1]["payload"]["bundle_ready"] is True
    assert orchestrator.state is OrchestratorState.TERMINAL


@pytest.mark.asyncio
async def test_stream_closed_after_first_event_releases_the_client(api_key, scripted, make_orchestrator):
    completion = scripted("# PRD", "# Stack")
    orchestrator = make_orchestrator(completion)
    session = orchestrator.start(_request("prd", "techStack"))

    stream = _stream_session_events(orchestrator, session)
    first = json.loads(await stream.__anext__())
    assert first["type"] == "session_started"
    await stream.aclose()

    assert orchestrator.state is OrchestratorState.TERMINAL
    assert session.is_terminal
    assert completion.call_count == 0
    assert {r.message for r in session.results.values()} == {CANCELLED_MESSAGE}

    # The client can submit again
    replacement = orchestrator.start(_request("prd"))
    assert orchestrator.session is replacement


@pytest.mark.asyncio
async def test_stream_closed_mid_document_ends_terminal(api_key, scripted, make_orchestrator):
    orchestrator = make_orchestrator(scripted("# PRD", "# Stack"))
    session = orchestrator.start(_request("prd", "techStack"))

    stream = _stream_session_events(orchestrator, session)
    await stream.__anext__()  # session_started
    started = json.loads(await stream.__anext__())
    assert started["type"] == "document_started"
    await stream.aclose()

    assert orchestrator.state is OrchestratorState.TERMINAL
    assert all(r.error_type == "cancelled" for r in session.results.values())


@pytest.mark.asyncio
async def test_stream_for_session_cancelled_before_start_reports_error(api_key, scripted, make_orchestrator):
    completion = scripted()
    orchestrator = make_orchestrator(completion)
    session = orchestrator.start(_request("prd"))
    orchestrator.cancel()

    events = [json.loads(line) async for line in _stream_session_events(orchestrator, session)]

    assert [e["type"] for e in events] == ["session_started", "error"]
    assert completion.call_count == 0
    assert orchestrator.state is OrchestratorState.TERMINAL
