"""
Pytest configuration and shared fixtures for MCP dispatch tests.
"""

import json
from types import SimpleNamespace

import pytest

from mcp_dispatch.engine import Prompt, PromptArgument, PromptMessage, PromptResult, Resource, Tool, text_content


class FakeRequest:
    """Minimal request double exposing what the dispatcher reads."""

    def __init__(self, method="POST", body=b"", headers=None, path="/mcp"):
        self.method = method
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        self.headers = headers or {}
        self.url = SimpleNamespace(path=path)

    async def body(self):
        return self._body


@pytest.fixture
def make_request():
    """Factory for fake requests."""

    def factory(method="POST", body=b"", headers=None, path="/mcp"):
        if isinstance(body, dict):
            body = json.dumps(body)
        return FakeRequest(method=method, body=body, headers=headers, path=path)

    return factory


@pytest.fixture
def ping_request():
    return {"jsonrpc": "2.0", "method": "ping", "params": {}, "id": 2}


@pytest.fixture
def mock_env_vars():
    """Provide mock environment variables for testing."""
    return {
        "SERVER_NAME": "test-mcp-dispatch",
        "SERVER_VERSION": "0.0.1-test",
        "LOG_LEVEL": "DEBUG",
        "MCP_ENDPOINT_PATH": "/mcp",
        "MCP_POST_ONLY": "false",
        "MCP_DIRECT_JSON": "true",
    }


@pytest.fixture
def mock_config(mock_env_vars, monkeypatch):
    """Set up mock environment variables for testing."""
    for key, value in mock_env_vars.items():
        monkeypatch.setenv(key, value)
    return mock_env_vars


@pytest.fixture
def echo_tool():
    def echo(message):
        return f"Echo: {message}"

    return Tool(
        name="echo",
        handler=echo,
        description="Echo a message",
        input_schema={
            "type": "object",
            "properties": {"message": {"type": "string"}},
            "required": ["message"],
        },
    )


@pytest.fixture
def context_recorder():
    """A tool that records the server context it was called with."""
    received = {}

    def record(server_context):
        received.update(server_context)
        return "Context received"

    return Tool(name="context_test", handler=record), received


@pytest.fixture
def topic_prompt():
    def template(arguments):
        return PromptResult(
            messages=[
                PromptMessage(
                    role="user",
                    content=text_content(f"Tell me about {arguments['topic']}"),
                )
            ]
        )

    return Prompt(
        name="test_prompt",
        template=template,
        description="A test prompt",
        arguments=[PromptArgument(name="topic", description="Topic", required=True)],
    )


@pytest.fixture
def test_resource():
    return Resource(
        uri="test://resource1",
        name="Test Resource",
        description="A test resource",
        mime_type="text/plain",
    )


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
