import httpx
import pytest
import pytest_asyncio

from cipher import Codec, salted_iv_source
from fake_github import API_URL, FakeGitHub
from kvstore.database import Database
from networking.repository import Repository

OWNER = "octo"
REPO = "kv"
PASSWORD = "Secret key"
SALT = f"{OWNER}/{REPO}".encode()
MIRRORS = [
    "https://mirror-a.test/gh/{owner}/{repo}@{commit}",
    "https://mirror-b.test/gh/{owner}/{repo}@{commit}",
]

_codec: list[Codec] = []

def shared_codec() -> Codec:
    # Key derivation runs 100k PBKDF2 rounds, so derive once per session
    if not _codec:
        _codec.append(Codec.from_password(PASSWORD, SALT, salted_iv_source(PASSWORD, SALT)))
    return _codec[0]

def make_repository(github: FakeGitHub, **kwargs) -> Repository:
    client = httpx.AsyncClient(transport=github.transport())
    kwargs.setdefault("mirrors", MIRRORS)
    return Repository(OWNER, REPO, client=client, api_url=API_URL, **kwargs)

def encryption() -> dict:
    codec = shared_codec()
    return {"encrypt": codec.encrypt, "decrypt": codec.decrypt}

@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub(OWNER, REPO)

@pytest_asyncio.fixture
async def repository(github):
    repository = make_repository(github, auth="token")
    await repository.init()
    yield repository
    await repository.client.aclose()

@pytest_asyncio.fixture
async def database(repository):
    return Database(repository)
