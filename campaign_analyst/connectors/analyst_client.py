"""
Campaign Analyst API client.

Client side of the streaming relay: posts a report, briefing or chat request
to the analyst endpoint and yields the text deltas as they arrive, so a UI
can render partial Markdown.

Timeouts here are for user feedback only. After SLOW_NOTICE_SECONDS with no
text the `on_slow` callback fires once ("taking longer than expected"); after
HARD_TIMEOUT_SECONDS the request fails with AnalystTimeoutError.
"""

import asyncio
from datetime import date
from typing import AsyncIterator, Callable, Optional

import httpx

from campaign_analyst.logger import log
from campaign_analyst.services.sse import iter_text_deltas

ANALYST_PATH = "/functions/v1/campaign-analyst"

SLOW_NOTICE_SECONDS = 10.0
HARD_TIMEOUT_SECONDS = 120.0

ERROR_MESSAGES = {
    429: "Rate limit exceeded. Please wait a moment and try again.",
    402: "AI credits depleted. Please add credits to continue.",
}


class AnalystRequestError(Exception):
    """The analyst endpoint answered with an error instead of a stream."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    @property
    def retryable(self) -> bool:
        return self.status_code in (429, 500, 502, 503)


class AnalystTimeoutError(AnalystRequestError):
    def __init__(self, seconds: float):
        super().__init__(504, f"The analyst did not finish within {seconds:.0f} seconds.")


class AnalystClient:
    """Streams analyst output for one workspace."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        slow_after: float = SLOW_NOTICE_SECONDS,
        timeout_after: float = HARD_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.slow_after = slow_after
        self.timeout_after = timeout_after
        self.transport = transport

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def stream(
        self,
        body: dict,
        on_slow: Optional[Callable[[], None]] = None,
    ) -> AsyncIterator[str]:
        """POST `body` and yield text deltas in arrival order."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout_after
        slow_at = loop.time() + self.slow_after
        got_text = False

        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout_after, connect=10.0),
            transport=self.transport,
        ) as client:
            async with client.stream("POST", ANALYST_PATH, json=body, headers=self._headers()) as response:
                if not response.is_success:
                    await response.aread()
                    raise _request_error(response)

                deltas = iter_text_deltas(response.aiter_bytes())
                pending = None
                try:
                    while True:
                        if pending is None:
                            pending = asyncio.ensure_future(anext(deltas))

                        now = loop.time()
                        if now >= deadline:
                            raise AnalystTimeoutError(self.timeout_after)

                        wait = deadline - now
                        if not got_text and slow_at > now:
                            wait = min(wait, slow_at - now)

                        done, _ = await asyncio.wait({pending}, timeout=wait)
                        if not done:
                            if not got_text and loop.time() >= slow_at:
                                log.warning("Analyst is taking longer than expected")
                                if on_slow:
                                    on_slow()
                                slow_at = float("inf")
                            continue

                        task, pending = pending, None
                        try:
                            delta = task.result()
                        except StopAsyncIteration:
                            return

                        got_text = True
                        yield delta
                finally:
                    if pending is not None:
                        pending.cancel()
                        try:
                            await pending
                        except (asyncio.CancelledError, StopAsyncIteration):
                            pass
                    await deltas.aclose()

    async def stream_report(self, workspace_id: str, analysis_period: str = "trailing7",
                            client_date: Optional[date] = None, **kwargs) -> AsyncIterator[str]:
        async for delta in self.stream(_body(workspace_id, analysis_period, client_date), **kwargs):
            yield delta

    async def stream_briefing(self, workspace_id: str, analysis_period: str = "yesterday",
                              client_date: Optional[date] = None, **kwargs) -> AsyncIterator[str]:
        body = _body(workspace_id, analysis_period, client_date)
        body["briefingMode"] = True
        async for delta in self.stream(body, **kwargs):
            yield delta

    async def stream_chat(self, workspace_id: str, messages: list[dict], analysis_period: str = "trailing7",
                          client_date: Optional[date] = None, **kwargs) -> AsyncIterator[str]:
        body = _body(workspace_id, analysis_period, client_date)
        body["messages"] = [{"role": m["role"], "content": m["content"]} for m in messages]
        async for delta in self.stream(body, **kwargs):
            yield delta

    async def run_report(self, workspace_id: str, **kwargs) -> str:
        return "".join([d async for d in self.stream_report(workspace_id, **kwargs)])

    async def run_briefing(self, workspace_id: str, **kwargs) -> str:
        return "".join([d async for d in self.stream_briefing(workspace_id, **kwargs)])

    async def run_chat(self, workspace_id: str, messages: list[dict], **kwargs) -> str:
        return "".join([d async for d in self.stream_chat(workspace_id, messages, **kwargs)])


def _body(workspace_id: str, analysis_period: str, client_date: Optional[date]) -> dict:
    return {
        "workspaceId": workspace_id,
        "analysisPeriod": analysis_period,
        "clientDate": (client_date or date.today()).isoformat(),
    }


def _request_error(response: httpx.Response) -> AnalystRequestError:
    status = response.status_code
    if status in ERROR_MESSAGES:
        return AnalystRequestError(status, ERROR_MESSAGES[status])
    try:
        message = response.json().get("error") or "Analysis failed"
    except (ValueError, AttributeError):
        message = "Analysis failed"
    return AnalystRequestError(status, message)
