import pytest


@pytest.fixture
def anyio_backend() -> str:
    """The app schedules work with asyncio, so anyio-marked tests run on asyncio only."""
    return "asyncio"
