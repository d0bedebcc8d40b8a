"""Tests for the builder client against a stub builder."""

import json
import socket
import time

import aiohttp
import pytest

from buildoor.builder import (
    Accepted,
    BuilderClient,
    Payload,
    Rejected,
    SignedValidatorRegistration,
    builder_path,
    parse_block_response,
    parse_header_response,
    parse_registration_response,
)
from buildoor.builder.client import BLOCK_PATH, HEADER_PATH
from buildoor.exceptions import (
    BuilderRejected,
    InvalidEndpoint,
    MalformedResponse,
    PayloadConversionFailed,
    TransportError,
)

from .conftest import FEE_RECIPIENT, PARENT_HASH, make_executable_data


def unused_port() -> int:
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class TestBuilderPath:
    def test_slot_is_plain_decimal(self, identity):
        path = builder_path(HEADER_PATH, 12345, PARENT_HASH, identity.pubkey)
        assert path == f"/eth/v1/builder/header/12345/{PARENT_HASH}/{identity.pubkey_hex}"

    def test_hex_case_preserved(self, identity):
        parent = "0x" + "AbCd" * 16
        pubkey = "0x" + identity.pubkey.hex().upper()
        path = builder_path(BLOCK_PATH, 7, parent, pubkey)
        assert path == f"/eth/v1/builder/block/7/{parent}/{pubkey}"

    def test_bytes_rendered_lowercase(self, identity):
        path = builder_path(BLOCK_PATH, 0, bytes.fromhex("AB" * 32), identity.pubkey)
        assert f"/0/0x{'ab' * 32}/" in path

    @pytest.mark.parametrize("slot", [-1, 2**64, "12", 1.5, True])
    def test_invalid_slot(self, identity, slot):
        with pytest.raises((TypeError, ValueError)):
            builder_path(HEADER_PATH, slot, PARENT_HASH, identity.pubkey)

    def test_invalid_parent_hash(self, identity):
        with pytest.raises(ValueError):
            builder_path(HEADER_PATH, 1, "0x1234", identity.pubkey)


class TestResponseParsing:
    def test_registration(self):
        assert parse_registration_response(200, b"") == Accepted(status=200)
        assert parse_registration_response(204, b"") == Accepted(status=204)
        assert parse_registration_response(400, b'{"code":400,"message":"bad sig"}') == Rejected(
            message="bad sig", status=400
        )
        assert parse_registration_response(502, b"bad gateway") == Rejected(
            message="bad gateway", status=502
        )
        assert parse_registration_response(500, b"") == Rejected(message="HTTP 500", status=500)

    def test_header_envelope(self):
        assert parse_header_response(200, b'{"code":200,"message":"ok"}') == Accepted(status=200)
        assert parse_header_response(200, b'{"code":400,"message":"bad slot"}') == Rejected(
            message="bad slot", status=400
        )
        assert parse_header_response(503, b"unavailable") == Rejected(
            message="unavailable", status=503
        )

    @pytest.mark.parametrize(
        "body",
        [b"not json", b"[]", b'{"message":"no code"}', b'{"code":"200"}', b'{"code":200,"message":5}'],
    )
    def test_header_malformed(self, body):
        with pytest.raises(MalformedResponse):
            parse_header_response(200, body)

    def test_block_envelope(self):
        body = json.dumps({"version": "capella", "data": {"a": 1}}).encode()
        assert parse_block_response(200, body) == Payload(version="capella", data={"a": 1})
        assert parse_block_response(404, b'{"message":"no payload"}') == Rejected(
            message="no payload", status=404
        )

    @pytest.mark.parametrize(
        "body",
        [b"", b"{", b'{"data":{}}', b'{"version":"capella","data":[]}', b'{"version":1,"data":{}}'],
    )
    def test_block_malformed(self, body):
        with pytest.raises(MalformedResponse):
            parse_block_response(200, body)


class TestClientConstruction:
    def test_invalid_host(self, identity):
        with pytest.raises(InvalidEndpoint):
            BuilderClient("example.com", identity)

    def test_resolves_endpoint(self, identity):
        client = BuilderClient("example.com:3500", identity, timeout=5)
        assert client.endpoint.base_url == "http://example.com:3500"
        assert client.timeout.total == 5
        assert "pubkey=0x" in repr(client)


class TestRegisterValidator:
    @pytest.mark.asyncio
    async def test_posts_signed_registration(self, builder_url, stub_builder, identity):
        async with BuilderClient(builder_url, identity) as client:
            response = await client.register_validator(FEE_RECIPIENT, 30_000_000, timestamp=1_700_000_000)

        assert response == Accepted(status=200)
        assert stub_builder.requests == [("POST", "/eth/v1/builder/validators")]
        assert stub_builder.content_types == ["application/json"]

        body = stub_builder.bodies[0]
        signed = SignedValidatorRegistration.from_dict(json.loads(body))
        assert signed.encode() == body
        assert signed.verify()
        assert signed.message.pubkey == identity.pubkey
        assert signed.message.timestamp == 1_700_000_000
        assert signed.message.gas_limit == 30_000_000

    @pytest.mark.asyncio
    async def test_default_timestamp_is_now(self, builder_url, stub_builder, identity):
        before = int(time.time())
        async with BuilderClient(builder_url, identity) as client:
            await client.register_validator(FEE_RECIPIENT, 1)
        after = int(time.time())

        message = json.loads(stub_builder.bodies[0])["message"]
        assert before <= int(message["timestamp"]) <= after

    @pytest.mark.asyncio
    async def test_rejected_status_raises(self, builder_url, stub_builder, identity):
        stub_builder.register_status = 400
        stub_builder.register_body = b'{"code":400,"message":"invalid signature"}'
        async with BuilderClient(builder_url, identity) as client:
            with pytest.raises(BuilderRejected) as exc_info:
                await client.register_validator(FEE_RECIPIENT, 1)
        assert exc_info.value.status == 400
        assert exc_info.value.message == "invalid signature"

    @pytest.mark.asyncio
    async def test_invalid_fee_recipient(self, builder_url, stub_builder, identity):
        async with BuilderClient(builder_url, identity) as client:
            with pytest.raises(ValueError):
                await client.register_validator("0x1234", 1)
        assert stub_builder.requests == []


class TestGetHeader:
    @pytest.mark.asyncio
    async def test_success(self, builder_url, stub_builder, identity):
        async with BuilderClient(builder_url, identity) as client:
            response = await client.get_header(12345, PARENT_HASH)

        assert response == Accepted(status=200)
        method, path = stub_builder.requests[0]
        assert method == "GET"
        assert path == f"/eth/v1/builder/header/12345/{PARENT_HASH}/{identity.pubkey_hex}"

    @pytest.mark.asyncio
    async def test_rejected_by_envelope(self, builder_url, stub_builder, identity):
        stub_builder.header_body = b'{"code":400,"message":"bad slot"}'
        async with BuilderClient(builder_url, identity) as client:
            with pytest.raises(BuilderRejected) as exc_info:
                await client.get_header(1, PARENT_HASH)
        assert exc_info.value.message == "bad slot"
        assert exc_info.value.status == 400

    @pytest.mark.asyncio
    async def test_malformed(self, builder_url, stub_builder, identity):
        stub_builder.header_body = b"<html>"
        async with BuilderClient(builder_url, identity) as client:
            with pytest.raises(MalformedResponse):
                await client.get_header(1, PARENT_HASH)


class TestGetBlock:
    @pytest.mark.asyncio
    async def test_decodes_block(self, builder_url, stub_builder, identity):
        parent = "0x" + "5c" * 32
        payload = make_executable_data(parent_hash=parent)
        stub_builder.respond_block(payload)

        async with BuilderClient(builder_url, identity) as client:
            block = await client.get_block(100, parent)

        assert "0x" + block.parent_hash.hex() == parent
        assert "0x" + block.hash.hex() == payload["blockHash"]
        assert len(block.transactions) == 2
        assert stub_builder.requests[0] == (
            "GET", f"/eth/v1/builder/block/100/{parent}/{identity.pubkey_hex}"
        )

    @pytest.mark.asyncio
    async def test_explicit_pubkey(self, builder_url, stub_builder, identity, other_identity):
        stub_builder.respond_block(make_executable_data())
        async with BuilderClient(builder_url, identity) as client:
            await client.get_block(1, PARENT_HASH, pubkey=other_identity.pubkey)
        assert stub_builder.requests[0][1].endswith("/" + other_identity.pubkey_hex)

    @pytest.mark.asyncio
    async def test_malformed_transaction(self, builder_url, stub_builder, identity):
        payload = make_executable_data()
        payload["transactions"] = ["0xc1"]
        stub_builder.respond_block(payload)

        async with BuilderClient(builder_url, identity) as client:
            with pytest.raises(PayloadConversionFailed, match="invalid transaction 0"):
                await client.get_block(1, PARENT_HASH)

    @pytest.mark.asyncio
    async def test_malformed_envelope(self, builder_url, stub_builder, identity):
        stub_builder.block_body = b'{"version":"capella"}'
        async with BuilderClient(builder_url, identity) as client:
            with pytest.raises(MalformedResponse):
                await client.get_block(1, PARENT_HASH)

    @pytest.mark.asyncio
    async def test_http_error_status(self, builder_url, stub_builder, identity):
        stub_builder.block_status = 500
        stub_builder.block_body = b'{"code":500,"message":"internal error"}'
        async with BuilderClient(builder_url, identity) as client:
            with pytest.raises(BuilderRejected, match="internal error"):
                await client.get_block(1, PARENT_HASH)


class TestTransport:
    @pytest.mark.asyncio
    async def test_connection_refused(self, identity):
        async with BuilderClient(f"127.0.0.1:{unused_port()}", identity) as client:
            with pytest.raises(TransportError) as exc_info:
                await client.get_header(1, PARENT_HASH)
        assert exc_info.value.operation == "get_header"

    @pytest.mark.asyncio
    async def test_timeout(self, builder_url, stub_builder, identity):
        stub_builder.delay = 1.0
        async with BuilderClient(builder_url, identity, timeout=0.1) as client:
            with pytest.raises(TransportError, match="timed out"):
                await client.get_header(1, PARENT_HASH)

    @pytest.mark.asyncio
    async def test_each_call_is_independent(self, builder_url, stub_builder, identity):
        async with BuilderClient(builder_url, identity) as client:
            await client.get_header(1, PARENT_HASH)
            stub_builder.header_body = b'{"code":500,"message":"busy"}'
            with pytest.raises(BuilderRejected):
                await client.get_header(2, PARENT_HASH)
            stub_builder.header_body = b'{"code":200,"message":"ok"}'
            assert await client.get_header(3, PARENT_HASH) == Accepted(status=200)
        assert len(stub_builder.requests) == 3

    @pytest.mark.asyncio
    async def test_injected_session_left_open(self, builder_url, stub_builder, identity):
        async with aiohttp.ClientSession() as session:
            async with BuilderClient(builder_url, identity, session=session) as client:
                await client.get_header(1, PARENT_HASH)
            assert not session.closed
        assert len(stub_builder.requests) == 1
