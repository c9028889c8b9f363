import os
from typing import Any

import pytest
import pytest_asyncio

from fake_tmi import FakeTMIServer

# Plain (non-verbose) log lines regardless of the developer's shell
os.environ["DEBUG"] = ""


@pytest_asyncio.fixture
async def tmi_server():
    """Factory starting fake chat servers; all are shut down after the test."""
    servers: list[FakeTMIServer] = []

    async def _start(replies: list[str] | None = None) -> FakeTMIServer:
        server = await FakeTMIServer(replies).start()
        servers.append(server)
        return server

    yield _start
    for server in servers:
        await server.close()


@pytest.fixture
def captured_events(monkeypatch: pytest.MonkeyPatch) -> list[tuple[str, str, dict[str, Any]]]:
    """Record every ``logger.log_event`` call instead of emitting it."""
    from tmi_client.logs.logger import logger

    events: list[tuple[str, str, dict[str, Any]]] = []

    def _capture(domain: str, action: str, *args: Any, **kwargs: Any) -> None:
        events.append((domain, action, kwargs))

    monkeypatch.setattr(logger, "log_event", _capture)
    return events
