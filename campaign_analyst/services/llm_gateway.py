"""
AI gateway client and stream relay.

Sends chat-completions requests to an OpenAI-compatible gateway with
`stream: true` and hands the raw SSE bytes back untouched. Errors are only
intercepted before the stream starts: 429 and 402 get their own messages,
everything else is a generic failure. Nothing is retried here; retrying is
up to the user.
"""

from typing import AsyncIterator

import httpx

from campaign_analyst.config import Settings
from campaign_analyst.errors import ConfigurationError, GatewayError
from campaign_analyst.logger import log
from campaign_analyst.services.prompts import LLMRequest


class GatewayStream:
    """An open upstream SSE response. Iterate once; closes itself when done."""

    def __init__(self, response: httpx.Response, client: httpx.AsyncClient):
        self.response = response
        self.client = client

    async def __aiter__(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self.response.aiter_raw():
                yield chunk
        finally:
            await self.aclose()

    async def aclose(self):
        await self.response.aclose()
        await self.client.aclose()


class LLMGateway:
    """Streaming chat-completions client with explicit configuration."""

    def __init__(
        self,
        url: str,
        api_key: str,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport = None,
    ):
        if not api_key:
            raise ConfigurationError("AI gateway API key is not configured")
        self.url = url
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, transport: httpx.AsyncBaseTransport = None) -> "LLMGateway":
        return cls(
            url=settings.ai_gateway_url,
            api_key=settings.ai_gateway_api_key,
            timeout=settings.ai_gateway_timeout,
            transport=transport,
        )

    async def stream(self, request: LLMRequest) -> GatewayStream:
        """
        Open the streaming completion.

        Raises GatewayError if the gateway cannot be reached or answers with
        a non-2xx status; otherwise returns the open stream.
        """
        client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            transport=self.transport,
        )
        http_request = client.build_request(
            "POST",
            self.url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            json=request.model_dump(),
        )

        try:
            response = await client.send(http_request, stream=True)
        except httpx.HTTPError as e:
            await client.aclose()
            log.error(f"AI gateway unreachable: {e}")
            raise GatewayError(500, GatewayError.FAILED) from e

        if response.is_success:
            return GatewayStream(response, client)

        try:
            body = (await response.aread()).decode("utf-8", errors="replace")
        finally:
            await response.aclose()
            await client.aclose()

        log.error(f"AI gateway error: {response.status_code} {body[:500]}")
        raise GatewayError.from_status(response.status_code)
