"""Tests for resource synthesis."""

import json
import unittest

import anyio
import httpx

from openapi_mcp.errors import (
    ResourceRequestFailed,
    ResourceTimeout,
    ResourceTransport,
    ResourceUnavailable,
)
from openapi_mcp.openapi.loader import parse_spec
from openapi_mcp.openapi.resources import synthesize_resources
from tests.fixtures.specs import MockApi, petstore_spec


def _spec(documents=None, **changes):
    document = petstore_spec()
    if documents is not None:
        document["x-mcp-resources"] = documents
    document.update(changes)
    return parse_spec(document).unwrap()


def _by_uri(report):
    return {resource.uri: resource for resource in report.resources}


class TestStaticResources(unittest.IsolatedAsyncioTestCase):
    """Test cases for schema and document resources."""

    async def test_schema_resources(self):
        report = synthesize_resources(_spec())
        resources = _by_uri(report)

        self.assertEqual(report.warnings, [])
        self.assertIn("schema://Pet", resources)
        self.assertIn("schema://NewPet", resources)

        pet = resources["schema://Pet"]
        self.assertEqual(pet.mime_type, "application/schema+json")
        self.assertEqual(pet.description, "A pet")

        content = (await pet.read()).unwrap()
        self.assertEqual(json.loads(content.text)["required"], ["id", "name"])

    async def test_spec_resource(self):
        resource = _by_uri(synthesize_resources(_spec()))["openapi://spec"]

        content = (await resource.read()).unwrap()

        self.assertEqual(content.mime_type, "application/json")
        document = json.loads(content.text)
        self.assertEqual(document["info"]["title"], "Petstore")
        self.assertNotIn("$ref", json.dumps(document["paths"]))

    async def test_schema_name_is_quoted(self):
        document = petstore_spec()
        document["components"]["schemas"]["Pet List"] = {"type": "array"}
        resources = _by_uri(synthesize_resources(parse_spec(document).unwrap()))
        self.assertIn("schema://Pet%20List", resources)

    async def test_declared_content(self):
        report = synthesize_resources(
            _spec(
                documents=[
                    {"name": "guide", "content": "# Guide", "mimeType": "text/markdown"},
                    {"name": "limits", "content": {"perMinute": 60}},
                ]
            )
        )
        resources = _by_uri(report)

        guide = (await resources["doc://guide"].read()).unwrap()
        self.assertEqual(guide.text, "# Guide")
        self.assertEqual(guide.mime_type, "text/markdown")

        limits = (await resources["doc://limits"].read()).unwrap()
        self.assertEqual(json.loads(limits.text), {"perMinute": 60})
        self.assertEqual(limits.mime_type, "application/json")

    def test_invalid_entries_become_warnings(self):
        document = petstore_spec()
        document["components"]["schemas"]["Broken"] = "not a schema"
        document["x-mcp-resources"] = [
            {"name": "empty"},
            {"name": "both", "content": "a", "path": "/b"},
            {"name": "relative", "path": "docs"},
            "just a string",
            {"content": "nameless"},
        ]

        report = synthesize_resources(parse_spec(document).unwrap())

        self.assertEqual(
            [warning.name for warning in report.warnings],
            ["Broken", "empty", "both", "relative", "document[3]", "document[4]"],
        )
        self.assertEqual(len(report.resources), 3)

    def test_duplicate_uri(self):
        report = synthesize_resources(
            _spec(documents=[{"name": "Pet", "uri": "schema://Pet", "content": "dup"}])
        )
        self.assertEqual(len(report.warnings), 1)
        self.assertIn("duplicate URI", report.warnings[0].reason)
        self.assertEqual(len([r for r in report.resources if r.uri == "schema://Pet"]), 1)


class TestHttpResources(unittest.IsolatedAsyncioTestCase):
    """Test cases for declared documents fetched from the API."""

    async def _read(self, handler, timeout=30.0, with_client=True):
        self.api = MockApi(handler)
        async with self.api.client() as client:
            report = synthesize_resources(
                _spec(documents=[{"name": "changelog", "path": "/changelog"}]),
                client=client if with_client else None,
                timeout=timeout,
            )
            return await _by_uri(report)["doc://changelog"].read()

    async def test_fetch(self):
        result = await self._read(
            lambda request: httpx.Response(
                200, text="v1: first", headers={"Content-Type": "text/markdown; charset=utf-8"}
            )
        )

        content = result.unwrap()
        self.assertEqual(content.text, "v1: first")
        self.assertEqual(content.mime_type, "text/markdown")
        self.assertEqual(str(self.api.requests[0].url), "https://api.example.com/v1/changelog")
        self.assertEqual(self.api.requests[0].method, "GET")

    async def test_error_status(self):
        result = await self._read(lambda request: httpx.Response(500, text="oops"))
        error = result.unwrap_err()
        self.assertIsInstance(error, ResourceRequestFailed)
        self.assertEqual(error.status, 500)

    async def test_transport_error(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = await self._read(refuse)
        self.assertIsInstance(result.unwrap_err(), ResourceTransport)

    async def test_timeout(self):
        async def slow(request):
            await anyio.sleep(5)
            return httpx.Response(200)

        result = await self._read(slow, timeout=0.05)
        self.assertIsInstance(result.unwrap_err(), ResourceTimeout)

    async def test_no_client(self):
        result = await self._read(lambda request: httpx.Response(200), with_client=False)
        self.assertIsInstance(result.unwrap_err(), ResourceUnavailable)
        self.assertEqual(self.api.call_count, 0)

    def test_synthesis_does_no_io(self):
        api = MockApi(lambda request: httpx.Response(200))
        synthesize_resources(
            _spec(documents=[{"name": "changelog", "path": "/changelog"}]),
            client=api.client(),
        )
        self.assertEqual(api.call_count, 0)


if __name__ == "__main__":
    unittest.main()
