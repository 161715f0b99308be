"""
Command line entry point for the GitHub backed key-value store.

usage: python3 main.py config.json serve
       python3 main.py config.json get KEY
       python3 main.py config.json set KEY VALUE [--overwrite]
Keys and values are parsed as JSON, falling back to plain strings.
"""
import os
import sys
import json
import asyncio
import argparse
import logging
from typing import Any

import fastapi
from serde import serde, field
from serde.json import from_json
import uvicorn

from cipher import Codec, salted_iv_source
from kvstore.database import Database
from kvstore.errors import GitKVError
from networking.api_server import APIHandler, to_json
from networking.repository import DEFAULT_MIRRORS

logger = logging.getLogger(__name__)

@serde
class Config:
    owner: str
    repo: str
    auth: str | None = None
    password: str | None = None
    mirrors: list[str] = field(default_factory=lambda: list(DEFAULT_MIRRORS))
    host: str = "127.0.0.1"
    port: int = 8000

def load_config(path: str) -> Config:
    with open(path, "r") as f:
        config = from_json(Config, f.read())
    # Secrets may live in the environment instead of the file
    config.auth = config.auth or os.environ.get("GITHUB_AUTH")
    config.password = config.password or os.environ.get("GITKV_PASSWORD")
    return config

async def open_database(config: Config) -> Database:
    kwargs: dict[str, Any] = {
        "owner": config.owner,
        "repo": config.repo,
        "auth": config.auth,
        "mirrors": config.mirrors,
    }
    if config.password:
        salt = f"{config.owner}/{config.repo}".encode()
        # 100k PBKDF2 rounds, kept off the event loop
        codec = await asyncio.to_thread(
            Codec.from_password, config.password, salt, salted_iv_source(config.password, salt),
        )
        kwargs["encrypt"] = codec.encrypt
        kwargs["decrypt"] = codec.decrypt
    return await Database.instantiate(**kwargs)

def parse_value(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text

async def serve(database: Database, config: Config):
    app = fastapi.FastAPI()
    handler = APIHandler(database)
    app.include_router(handler.router)
    uconfig = uvicorn.Config(app=app, host=config.host, port=config.port)
    server = uvicorn.Server(config=uconfig)
    await server.serve()

async def run(args: argparse.Namespace) -> Any:
    config = load_config(args.config)
    database = await open_database(config)
    async with database.repository:
        if args.command == "serve":
            await serve(database, config)
            return None
        if args.command == "get":
            return to_json(await database.read(parse_value(args.key)))
        if args.command == "has":
            return await database.has(parse_value(args.key))
        if args.command == "set":
            return await database.create(parse_value(args.key), parse_value(args.value), overwrite=args.overwrite)
        if args.command == "incr":
            result = await database.increment(parse_value(args.key), parse_value(args.delta))
            return to_json(result.current_value)
        if args.command == "toggle":
            result = await database.toggle(parse_value(args.key))
            return result.current_value
        if args.command == "delete":
            await database.delete([parse_value(key) for key in args.keys])
            return None
        if args.command == "uuid":
            identity = await database.identify(parse_value(args.key))
            return identity.uuid
        if args.command == "key":
            return to_json(await database.uuid_to_key(args.uuid))
    raise ValueError(f"Unknown command {args.command}")

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Key-value store in a GitHub repository")
    parser.add_argument("config", help="path to the JSON config file")
    parser.add_argument("-v", "--verbose", action="store_true")
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("serve")
    for name in ("get", "has", "toggle", "uuid"):
        commands.add_parser(name).add_argument("key")
    set_parser = commands.add_parser("set")
    set_parser.add_argument("key")
    set_parser.add_argument("value")
    set_parser.add_argument("--overwrite", action="store_true")
    incr_parser = commands.add_parser("incr")
    incr_parser.add_argument("key")
    incr_parser.add_argument("delta", nargs="?", default="1")
    commands.add_parser("delete").add_argument("keys", nargs="+")
    commands.add_parser("key").add_argument("uuid")
    return parser

def main() -> int:
    args = build_parser().parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        result = asyncio.run(run(args))
    except GitKVError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    if result is not None:
        print(json.dumps(result))
    return 0

if __name__ == "__main__":
    sys.exit(main())
