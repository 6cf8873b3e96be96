"""Shared OpenAPI documents and HTTP fakes for tests."""

import copy
import json
from typing import Any, Callable, Dict, List

import httpx

_PETSTORE = {
    "openapi": "3.0.3",
    "info": {
        "title": "Petstore",
        "description": "API for testing",
        "version": "1.0.0",
    },
    "servers": [{"url": "https://api.example.com/v1/"}],
    "components": {
        "schemas": {
            "Pet": {
                "type": "object",
                "description": "A pet",
                "required": ["id", "name"],
                "properties": {
                    "id": {"type": "integer"},
                    "name": {"type": "string"},
                    "tag": {"type": "string"},
                },
            },
            "NewPet": {
                "type": "object",
                "required": ["name"],
                "properties": {
                    "name": {"type": "string"},
                    "tag": {"type": "string"},
                },
            },
        },
        "securitySchemes": {
            "oauth": {
                "type": "oauth2",
                "flows": {
                    "authorizationCode": {
                        "authorizationUrl": "https://auth.example.com/authorize",
                        "tokenUrl": "https://auth.example.com/token",
                        "scopes": {"pets:write": "modify pets"},
                    }
                },
            }
        },
    },
    "paths": {
        "/pets": {
            "get": {
                "operationId": "listPets",
                "summary": "List pets",
                "parameters": [
                    {
                        "name": "limit",
                        "in": "query",
                        "required": False,
                        "schema": {"type": "integer"},
                    },
                    {
                        "name": "tags",
                        "in": "query",
                        "schema": {"type": "array", "items": {"type": "string"}},
                    },
                ],
                "responses": {
                    "200": {
                        "description": "A list of pets",
                        "content": {
                            "application/json": {
                                "schema": {
                                    "type": "array",
                                    "items": {"$ref": "#/components/schemas/Pet"},
                                }
                            }
                        },
                    }
                },
            },
            "post": {
                "operationId": "createPet",
                "summary": "Create a pet",
                "security": [{"oauth": ["pets:write"]}],
                "requestBody": {
                    "required": True,
                    "content": {
                        "application/json": {
                            "schema": {"$ref": "#/components/schemas/NewPet"}
                        }
                    },
                },
                "responses": {"201": {"description": "Created"}},
            },
        },
        "/pets/{id}": {
            "parameters": [
                {"name": "id", "in": "path", "required": True, "schema": {"type": "string"}}
            ],
            "get": {
                "operationId": "getPet",
                "description": "Fetch a single pet",
                "responses": {
                    "200": {
                        "description": "A pet",
                        "content": {
                            "application/json": {
                                "schema": {"$ref": "#/components/schemas/Pet"}
                            }
                        },
                    }
                },
            },
            "delete": {
                "operationId": "deletePet",
                "deprecated": True,
                "security": [{"oauth": []}],
                "responses": {"204": {"description": "Deleted"}},
            },
        },
    },
}


def petstore_spec() -> Dict[str, Any]:
    """Return a fresh copy of the sample petstore document."""
    return copy.deepcopy(_PETSTORE)


def json_response(status_code: int, payload: Any, **kwargs) -> httpx.Response:
    return httpx.Response(
        status_code,
        content=json.dumps(payload).encode("utf-8"),
        headers={"Content-Type": "application/json"},
        **kwargs,
    )


class MockApi:
    """Request handler for httpx.MockTransport that records every call."""

    def __init__(self, handler: Callable[[httpx.Request], Any]):
        self.requests: List[httpx.Request] = []
        self._handler = handler

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self._handler(request)
        if hasattr(response, "__await__"):
            response = await response
        return response

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def calls_to(self, path: str) -> List[httpx.Request]:
        return [request for request in self.requests if request.url.path == path]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))
