"""Root conftest: arena test environment and log routing shared by every test package."""

from pathlib import Path

import pytest
import structlog
from dotenv import load_dotenv

from shared.logging import configure_structlog

load_dotenv(Path(__file__).resolve().parent.parent / ".env.tests")

# Same processor chain as production, without handlers, so caplog sees arena events.
configure_structlog()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Drop match and player bindings left behind by service calls."""
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()
