"""Shared fixtures: signing identities, executable data and a stub builder."""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Optional

import pytest
import pytest_asyncio
import rlp
from aiohttp import web
from aiohttp.test_utils import TestServer

from buildoor.engine import compute_block_hash
from buildoor.validator import SigningIdentity

TEST_PRIVKEY = 0x263DBD792F5B1BE47ED85F8938C0F29586AF0D3AC7B977F21C278FE1462040E3
OTHER_PRIVKEY = 0x47B8192D77BF871B62E87859D653922725724A5C031AFEABC60BCEF5FF665138

PARENT_HASH = "0x" + "ab" * 32
FEE_RECIPIENT = "0x" + "11" * 20


@pytest.fixture(scope="session")
def identity() -> SigningIdentity:
    return SigningIdentity(privkey=TEST_PRIVKEY)


@pytest.fixture(scope="session")
def other_identity() -> SigningIdentity:
    return SigningIdentity(privkey=OTHER_PRIVKEY)


def legacy_tx(nonce: int = 0) -> bytes:
    return rlp.encode([nonce, 1_000_000_000, 21_000, b"\x22" * 20, 10**18, b"", 27, 1, 2])


def dynamic_fee_tx(nonce: int = 0) -> bytes:
    fields = [1, nonce, 1, 2_000_000_000, 21_000, b"\x33" * 20, 1, b"", [], 1, 3, 4]
    return b"\x02" + rlp.encode(fields)


def make_executable_data(parent_hash: str = PARENT_HASH, **overrides) -> dict:
    """Capella-shaped executable data with a consistent block hash."""
    data = {
        "parentHash": parent_hash,
        "feeRecipient": FEE_RECIPIENT,
        "stateRoot": "0x" + "01" * 32,
        "receiptsRoot": "0x" + "02" * 32,
        "logsBloom": "0x" + "00" * 256,
        "prevRandao": "0x" + "03" * 32,
        "blockNumber": "0x10",
        "gasLimit": "0x1c9c380",
        "gasUsed": "0xa410",
        "timestamp": "0x65f1b2c0",
        "extraData": "0x6275696c646f6f72",
        "baseFeePerGas": "0x7",
        "blockHash": "0x" + "00" * 32,
        "transactions": ["0x" + legacy_tx().hex(), "0x" + dynamic_fee_tx().hex()],
        "withdrawals": [
            {
                "index": "0x0",
                "validatorIndex": "0x5",
                "address": "0x" + "44" * 20,
                "amount": "0x3b9aca00",
            },
        ],
    }
    data.update(overrides)
    data["blockHash"] = "0x" + compute_block_hash(data).hex()
    return data


@dataclass
class StubBuilder:
    """Scripted builder responses plus a log of what the client sent."""

    register_status: int = 200
    register_body: bytes = b""
    header_status: int = 200
    header_body: bytes = b'{"code":200,"message":"success"}'
    block_status: int = 200
    block_body: bytes = b""
    delay: float = 0.0
    requests: list = field(default_factory=list)
    bodies: list = field(default_factory=list)
    content_types: list = field(default_factory=list)

    def respond_block(self, payload: Optional[dict], version: str = "capella") -> None:
        self.block_body = json.dumps({"version": version, "data": payload}).encode()

    async def _record(self, request: web.Request) -> None:
        self.requests.append((request.method, request.raw_path))
        self.content_types.append(request.headers.get("Content-Type"))
        self.bodies.append(await request.read())
        if self.delay:
            await asyncio.sleep(self.delay)

    async def register(self, request: web.Request) -> web.Response:
        await self._record(request)
        return web.Response(status=self.register_status, body=self.register_body)

    async def header(self, request: web.Request) -> web.Response:
        await self._record(request)
        return web.Response(
            status=self.header_status, body=self.header_body, content_type="application/json"
        )

    async def block(self, request: web.Request) -> web.Response:
        await self._record(request)
        return web.Response(
            status=self.block_status, body=self.block_body, content_type="application/json"
        )

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/eth/v1/builder/validators", self.register)
        app.router.add_get("/eth/v1/builder/header/{slot}/{parent_hash}/{pubkey}", self.header)
        app.router.add_get("/eth/v1/builder/block/{slot}/{parent_hash}/{pubkey}", self.block)
        return app


@pytest.fixture
def stub_builder() -> StubBuilder:
    return StubBuilder()


@pytest_asyncio.fixture
async def builder_server(stub_builder):
    server = TestServer(stub_builder.app())
    await server.start_server()
    yield server
    await server.close()


@pytest.fixture
def builder_url(builder_server) -> str:
    return f"http://{builder_server.host}:{builder_server.port}"
