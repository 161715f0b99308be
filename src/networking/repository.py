"""
Client for the GitHub repository that backs the store.

Values are written as commits whose tree holds the same blob under three names, so CDNs
can serve it as octet-stream, text or JSON. Object ids are computed offline first, which
lets writes of content that already exists skip the upload entirely.
"""
from datetime import datetime
from typing import Callable
from dataclasses import dataclass
import asyncio
import base64
import logging
import re

import httpx

from gitobjects import Person, TreeEntry, blob_hash, commit_hash, tree_hash
from kvstore.errors import Conflict, InitializationFailure, NetworkError, QueryRejected
from kvstore.types import TYPE_HASHES, TypeTag

logger = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"
API_VERSION = "2022-11-28"

ZERO_OID = "0" * 40

VALUE_NAME = "value"
VALUE_NAMES = {"octet-stream": "value", "text": "value.txt", "json": "value.json"}

PROVISIONING_REF = f"refs/tags/kv/types/{TypeTag.ARRAY_BUFFER.value}"

# Tried in order for public repositories; {commit} is the commit hash
DEFAULT_MIRRORS = [
    "https://cdn.jsdelivr.net/gh/{owner}/{repo}@{commit}",
    "https://cdn.statically.io/gh/{owner}/{repo}/{commit}",
    "https://rawcdn.githack.com/{owner}/{repo}/{commit}",
    "https://raw.githubusercontents.com/{owner}/{repo}/{commit}",
]

# Name and email use the same letters to keep commit objects small
COMMITTER = Person("a a", "a@a.a", "2025-01-01T00:00:00Z")

UPDATE_REFS_MUTATION = """
mutation($repositoryId: ID!, $refUpdates: [RefUpdate!]!) {
  updateRefs(input: { repositoryId: $repositoryId, refUpdates: $refUpdates }) {
    clientMutationId
  }
}
"""

# How GitHub words a rejection caused by a ref that moved or already exists
CONFLICT_TYPES = {"STALE_DATA"}
CONFLICT_MESSAGE = re.compile(r"precondition|stale|already exists|does not match|expected", re.IGNORECASE)

def is_conflict(error: dict) -> bool:
    return error.get("type") in CONFLICT_TYPES or bool(CONFLICT_MESSAGE.search(str(error.get("message", ""))))

def qualify_ref(name: str) -> str:
    # Unqualified names are branches
    return name if name.startswith("refs/") else f"refs/heads/{name}"

def _identity(data: bytes) -> bytes:
    return data

@dataclass
class RefUpdate:
    """
    One entry of an atomic ref batch.
    after_oid None deletes the ref. before_oid None skips the precondition; ZERO_OID
    requires that the ref does not exist yet.
    """
    name: str
    after_oid: str | None = None
    before_oid: str | None = None

    def to_graphql(self) -> dict:
        update = {
            "name": qualify_ref(self.name),
            "afterOid": self.after_oid or ZERO_OID,
            "force": True,
        }
        if self.before_oid is not None:
            update["beforeOid"] = self.before_oid
        return update

class Repository:
    owner: str
    name: str
    authenticated: bool
    encrypted: bool
    mirrors: list[str]
    client: httpx.AsyncClient
    id: str | None
    is_public: bool
    created: datetime | None

    def __init__(
        self,
        owner: str,
        repo: str,
        auth: str | None = None,
        encrypt: Callable[[bytes], bytes] | None = None,
        decrypt: Callable[[bytes], bytes] | None = None,
        mirrors: list[str] | None = None,
        client: httpx.AsyncClient | None = None,
        api_url: str = GITHUB_API,
    ):
        self.owner = owner
        self.name = repo
        self.authenticated = bool(auth)
        self.encrypted = encrypt is not None or decrypt is not None
        self.encrypt = encrypt or _identity
        self.decrypt = decrypt or _identity
        self.mirrors = list(DEFAULT_MIRRORS if mirrors is None else mirrors)
        self.api_url = api_url.rstrip("/")
        self.committer = COMMITTER
        self.author = COMMITTER
        self.headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
        }
        if auth:
            self.headers["Authorization"] = f"Bearer {auth}"
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=30.0)
        self.id = None
        self.is_public = False
        self.created = None

    @classmethod
    async def instantiate(cls, **kwargs) -> "Repository":
        """Construct and initialize; takes the same arguments as the constructor."""
        instance = cls(**kwargs)
        await instance.init()
        return instance

    async def init(self):
        # REST rather than GraphQL so that unauthenticated reads work
        info, _ = await asyncio.gather(self._fetch_info(), self._check_provisioned())
        self.id = info["node_id"]
        self.is_public = info.get("visibility", "private" if info.get("private") else "public") == "public"
        self.created = datetime.fromisoformat(info["created_at"].replace("Z", "+00:00"))
        logger.info(f"Opened {self.owner}/{self.name} (public={self.is_public}, encrypted={self.encrypted})")

    async def _fetch_info(self) -> dict:
        response = await self._request("GET", self._repo_path(""))
        self._check(response, f"repository {self.owner}/{self.name}")
        return response.json()

    async def _check_provisioned(self):
        expected = TYPE_HASHES.get(TypeTag.ARRAY_BUFFER)
        found = await self.resolve_ref(PROVISIONING_REF)
        if found != expected:
            raise InitializationFailure(
                f"Store not provisioned: {PROVISIONING_REF} is {found}, expected {expected}. "
                "Run the init workflow in the GitHub repo first."
            )

    async def aclose(self):
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "Repository":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    def _repo_path(self, suffix: str) -> str:
        return f"/repos/{self.owner}/{self.name}{suffix}"

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return await self.client.request(method, self.api_url + path, headers=self.headers, **kwargs)
        except httpx.HTTPError as e:
            raise NetworkError(f"GitHub API request {method} {path} failed: {e}") from e

    def _check(self, response: httpx.Response, what: str):
        if not response.is_success:
            raise NetworkError(f"GitHub API error for {what}", response.status_code)

    def _hash_payload(self, payload: bytes, message: str) -> str:
        blob = blob_hash(payload)
        tree = tree_hash({name: TreeEntry("blob", blob) for name in VALUE_NAMES.values()})
        return commit_hash(tree, self.author, self.committer, message)

    def content_hash_of(self, data: bytes, message: str = "", encrypt: bool | None = None) -> str:
        """
        Commit hash that write() would produce for these bytes, computed without network access.

        Args:
            data: The plaintext bytes
            message: Commit message, used to carry a MIME type
            encrypt: Override the repository's encryption setting for this call

        Returns:
            Hex commit hash
        """
        encrypt = self.encrypted if encrypt is None else encrypt
        payload = self.encrypt(data) if encrypt else data
        return self._hash_payload(payload, message)

    async def exists(self, commit: str) -> bool:
        response = await self._request("HEAD", self._repo_path(f"/git/commits/{commit}"))
        if response.status_code == 404:
            return False
        self._check(response, f"commit {commit}")
        return True

    async def write(self, data: bytes, message: str = "", encrypt: bool | None = None) -> str:
        """
        Store bytes as a deduplicated commit.

        Args:
            data: The plaintext bytes
            message: Commit message, used to carry a MIME type
            encrypt: Override the repository's encryption setting for this call

        Returns:
            Hex commit hash
        """
        encrypt = self.encrypted if encrypt is None else encrypt
        payload = self.encrypt(data) if encrypt else data
        expected = self._hash_payload(payload, message)
        if await self.exists(expected):
            logger.debug(f"Commit {expected} already exists, skipping upload")
            return expected

        response = await self._request("POST", self._repo_path("/git/blobs"), json={
            "content": base64.b64encode(payload).decode("ascii"),
            "encoding": "base64",
        })
        self._check(response, "blob upload")
        blob = response.json()["sha"]

        response = await self._request("POST", self._repo_path("/git/trees"), json={
            "tree": [
                {"path": path, "type": "blob", "mode": "100644", "sha": blob}
                for path in VALUE_NAMES.values()
            ],
        })
        self._check(response, "tree upload")
        tree = response.json()["sha"]

        response = await self._request("POST", self._repo_path("/git/commits"), json={
            "message": message,
            "tree": tree,
            "author": self._person(self.author),
            "committer": self._person(self.committer),
        })
        self._check(response, "commit upload")
        commit = response.json()["sha"]
        if commit != expected:
            logger.warning(f"Uploaded commit {commit} differs from offline hash {expected}")
        logger.debug(f"Uploaded {len(payload)} bytes as commit {commit}")
        return commit

    def _person(self, person: Person) -> dict:
        return {"name": person.name, "email": person.email, "date": person.date}

    async def graphql(self, query: str, variables: dict) -> dict:
        response = await self._request("POST", "/graphql", json={"query": query, "variables": variables})
        self._check(response, "GraphQL request")
        body = response.json()
        if body.get("errors"):
            raise QueryRejected(body["errors"])
        return body.get("data") or {}

    async def update_refs(self, updates: list[RefUpdate]):
        """
        Apply all ref updates in one atomic transaction, like
        `git push --atomic --force-with-lease`. Either every ref moves or none does.

        Raises:
            Conflict: A before_oid precondition failed, retry after re-reading
            QueryRejected: Any other rejection, e.g. rate limiting or missing permissions
        """
        names = [qualify_ref(update.name) for update in updates]
        try:
            await self.graphql(UPDATE_REFS_MUTATION, {
                "repositoryId": self.id,
                "refUpdates": [update.to_graphql() for update in updates],
            })
        except QueryRejected as e:
            if not all(is_conflict(error) for error in e.errors):
                raise
            raise Conflict(f"Ref update rejected for {', '.join(names)}: {e}", names) from e
        logger.debug(f"Updated refs {names}")

    async def resolve_ref(self, name: str) -> str | None:
        ref = qualify_ref(name).removeprefix("refs/")
        response = await self._request("GET", self._repo_path(f"/git/ref/{ref}"))
        if response.status_code == 404:
            return None
        self._check(response, f"ref {name}")
        return response.json()["object"]["sha"]

    async def fetch_blob(self, blob: str, decrypt: bool | None = None) -> bytes | None:
        decrypt = self.encrypted if decrypt is None else decrypt
        response = await self._request("GET", self._repo_path(f"/git/blobs/{blob}"))
        if response.status_code == 404:
            return None
        self._check(response, f"blob {blob}")
        data = base64.b64decode(response.json()["content"])
        return self.decrypt(data) if decrypt else data

    async def fetch_content(self, commit: str, decrypt: bool | None = None) -> bytes | None:
        """
        Fetch the value bytes stored in a commit.
        Private repositories go through the REST API, public ones through the CDN mirrors.
        """
        decrypt = self.encrypted if decrypt is None else decrypt
        if not self.is_public:
            # The contents API mangles arbitrary bytes, so only take the blob id from it
            response = await self._request(
                "GET", self._repo_path(f"/contents/{VALUE_NAME}"), params={"ref": commit},
            )
            if response.status_code == 404:
                return None
            self._check(response, f"contents of commit {commit}")
            return await self.fetch_blob(response.json()["sha"], decrypt=decrypt)

        for mirror in self.mirrors:
            url = mirror.format(owner=self.owner, repo=self.name, commit=commit) + f"/{VALUE_NAME}"
            try:
                response = await self.client.get(url, follow_redirects=True)
            except httpx.HTTPError as e:
                logger.warning(f"Mirror {url} failed: {e}")
                continue
            if response.status_code == 404:
                # Not upstream either, so other mirrors won't have it
                return None
            if not response.is_success:
                logger.warning(f"Mirror {url} answered {response.status_code}")
                continue
            return self.decrypt(response.content) if decrypt else response.content
        raise NetworkError(f"All {len(self.mirrors)} mirrors failed for commit {commit}")

    async def fetch_message(self, commit: str) -> str | None:
        response = await self._request("GET", self._repo_path(f"/git/commits/{commit}"))
        if response.status_code == 404:
            return None
        self._check(response, f"commit {commit}")
        return response.json()["message"]

    def public_links(self, commit: str) -> dict[str, str]:
        # Would expose ciphertext, or need auth
        if not self.is_public or self.encrypted:
            return {}
        base = DEFAULT_MIRRORS[0].format(owner=self.owner, repo=self.name, commit=commit)
        return {kind: f"{base}/{name}" for kind, name in VALUE_NAMES.items()}
