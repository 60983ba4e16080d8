# tests/conftest.py
import os
import logging
import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# Ensure test-friendly env (no providers file on disk, verbose logs)
os.environ.setdefault("PROVIDERS_FILE", "tests/no-such-providers.json")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

# IMPORTANT: import the app after envs are set
from genrelay.main import create_app
from genrelay.providers.base import ProviderKind, ProviderProfile
from genrelay.services.directory import InMemoryProviderDirectory
from genrelay.services.generation import GenerationService

CALLER = "alice"
AUTH = {"X-User-Id": CALLER}


@pytest.fixture
def profiles():
    return {
        "openai": ProviderProfile(
            id=1, owner=CALLER, name="openai", kind=ProviderKind.OPENAI_COMPATIBLE,
            base_url="https://api.openai.test/v1/", model="gpt-4o-mini",
            credential="sk-test-openai-1234567890",
        ),
        "ollama": ProviderProfile(
            id=2, owner=CALLER, name="ollama", kind=ProviderKind.OLLAMA,
            base_url="http://ollama.test:11434", model="qwen2.5",
        ),
        "ollama_v1": ProviderProfile(
            id=3, owner=CALLER, name="ollama v1", kind=ProviderKind.OLLAMA,
            base_url="http://ollama.test:11434/v1", model="qwen2.5",
            credential="ollama-key-abcdefgh",
        ),
        "gemini": ProviderProfile(
            id=4, owner=CALLER, name="gemini", kind=ProviderKind.GOOGLE_GEMINI,
            base_url="https://gemini.test/v1beta", model="gemini-1.5-flash",
            credential="gm-secret-key-0001",
        ),
        "anthropic": ProviderProfile(
            id=5, owner=CALLER, name="anthropic", kind=ProviderKind.ANTHROPIC,
            base_url="https://anthropic.test/v1", model="claude-3-haiku",
            credential="ant-secret-key-0001",
        ),
        "disabled": ProviderProfile(
            id=6, owner=CALLER, name="off", kind=ProviderKind.OPENAI_COMPATIBLE,
            base_url="https://off.test/v1", model="m", credential="sk-disabled-000000", enabled=False,
        ),
        "bob_private": ProviderProfile(
            id=7, owner="bob", name="bob", kind=ProviderKind.OPENAI_COMPATIBLE,
            base_url="https://bob.test/v1", model="m", credential="sk-bob-private-0000",
        ),
        "bob_public": ProviderProfile(
            id=8, owner="bob", name="shared", kind=ProviderKind.OPENAI_COMPATIBLE,
            base_url="https://shared.test/v1", model="shared-model", credential="sk-bob-public-00000",
            public=True,
        ),
    }


@pytest.fixture
def directory(profiles):
    return InMemoryProviderDirectory(profiles.values())


@pytest_asyncio.fixture
async def upstream():
    # the client the service uses to reach providers; respx intercepts it
    async with httpx.AsyncClient() as c:
        yield c


@pytest_asyncio.fixture
async def service(directory, upstream):
    return GenerationService(directory=directory, client=upstream)


@pytest_asyncio.fixture
async def app(directory, upstream):
    return create_app(directory=directory, client=upstream)


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def caplog_info(caplog):
    caplog.set_level(logging.INFO)
    return caplog
