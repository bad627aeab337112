"""Shared fixtures: a ChatClient wired to an in-process mock transport."""

from __future__ import annotations

from typing import Callable

import httpx
import pytest

from openai_wrapper.config import ClientSpec
from openai_wrapper.llm.client import ChatClient

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def spec() -> ClientSpec:
    return ClientSpec(url="http://test/v1", api_key="test-key")


@pytest.fixture
def make_client(spec: ClientSpec) -> Callable[[Handler], ChatClient]:
    """Build a ChatClient whose requests are answered by *handler*."""

    def _make(handler: Handler) -> ChatClient:
        transport = httpx.MockTransport(handler)
        return ChatClient(spec, transport=transport, async_transport=transport)

    return _make
