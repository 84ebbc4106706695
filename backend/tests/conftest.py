from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from app.main import app
from tests.utils.utils import get_user_token_headers


@pytest.fixture(scope="module")
def client() -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c


@pytest.fixture(scope="module")
def user_token_headers() -> dict[str, str]:
    return get_user_token_headers()


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"
