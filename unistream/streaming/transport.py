"""
unistream - Stream Transport

Owns one streaming call end to end: the HTTP request, the read loop, frame
scanning and classification, cancellation and the finalization protocol.

State machine:
    IDLE -> CONNECTING -> STREAMING -> FINALIZING -> COMPLETED
                 |             |            |
                 +-------------+------------+--> FAILED | CANCELLED

Exactly one terminal event (done=True) reaches the sink per call:
- COMPLETED: chunk="", full_content=<everything streamed>
- FAILED:    error=<message>
- CANCELLED: error="Cancelled by user"
"""

import asyncio
import inspect
from typing import TYPE_CHECKING, Any, AsyncIterator, Awaitable, Callable, Optional, Union

import httpx

from .cancellation import CancellationToken
from .session import StreamResult, StreamSession, TransportState
from ..core.config import get_http_timeout
from ..core.errors import (
    CANCELLED_MESSAGE,
    CancellationError,
    ConfigurationError,
    DecodeError,
    ProviderError,
    UniStreamError,
    UpstreamHTTPError,
    extract_api_error_message,
    map_transport_exception,
)
from ..core.models import EventType, ProviderRequest, RequestSpec, SinkEvent, StreamEvent
from ..observability.logging import LogContext, get_logger, redact_url
from ..observability.metrics import MetricsCollector, get_metrics
from ..observability.tracing import trace_provider_call

if TYPE_CHECKING:
    from ..adapters.base import ProviderAdapter

logger = get_logger("unistream.transport")

Sink = Callable[[SinkEvent], Union[None, Awaitable[None]]]

# Returned by _race() when the cancellation token wins
_CANCELLED = object()


async def deliver_event(sink: Sink, event: SinkEvent):
    """Hand one event to a sync or async sink."""
    result = sink(event)
    if inspect.isawaitable(result):
        await result


async def _next_chunk(chunks: AsyncIterator[bytes]) -> Optional[bytes]:
    """Next body chunk, or None at end of transport."""
    try:
        return await chunks.__anext__()
    except StopAsyncIteration:
        return None


class StreamTransport:
    """
    Runs streaming calls for one provider adapter.

    A transport holds no per-call state, so one instance may serve many
    concurrent execute() calls. An injected AsyncClient is shared and never
    closed here; otherwise each call opens and closes its own client.
    """

    def __init__(
        self,
        adapter: "ProviderAdapter",
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[httpx.Timeout] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.adapter = adapter
        self._client = client
        self._timeout = timeout
        self._metrics = metrics

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics or get_metrics()

    async def execute(
        self,
        spec: RequestSpec,
        sink: Sink,
        *,
        api_key: str,
        cancellation: Optional[CancellationToken] = None,
        endpoint: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> StreamResult:
        """
        Stream one completion into the sink.

        Returns the StreamResult for completed and cancelled calls. Failures
        are delivered to the sink and then raised, except a failure during the
        final flush of a stream that already delivered content.
        """
        session = StreamSession(
            provider=self.adapter.name,
            model=spec.model,
            scanner=self.adapter.create_scanner(),
        )
        if request_id:
            session.request_id = request_id

        with LogContext.scope(
            request_id=session.request_id,
            provider=session.provider,
            model=session.model,
            operation="stream",
        ), trace_provider_call(session.provider, session.model, "stream") as span:
            span.set_attribute("unistream.request_id", session.request_id)
            with self.metrics.track_active_stream(session.provider):
                try:
                    await self._run(session, spec, sink, api_key, cancellation, endpoint)
                except asyncio.CancelledError:
                    # Caller's task was cancelled: notify, then let it propagate
                    await self._finish_cancelled(session, sink, CANCELLED_MESSAGE)
                    self._record(session)
                    raise

            self._record(session)
            span.set_attribute("unistream.outcome", session.state.value)
            span.set_attribute("unistream.chunks", session.chunks_sent)

            if session.state == TransportState.FAILED and session.error is not None:
                if session.failed_while_finalizing and session.content_started:
                    logger.warning(
                        "Stream failed while finalizing; keeping delivered content",
                        error_message=session.error.message,
                        chunks=session.chunks_sent,
                    )
                else:
                    raise session.error

        return StreamResult.from_session(session)

    # ============================================================
    # Lifecycle
    # ============================================================

    async def _run(
        self,
        session: StreamSession,
        spec: RequestSpec,
        sink: Sink,
        api_key: str,
        cancellation: Optional[CancellationToken],
        endpoint: Optional[str],
    ):
        try:
            request = self.adapter.build_request(spec, api_key, endpoint)
        except ConfigurationError as e:
            e.error.request_id = session.request_id
            await self._fail(session, sink, e)
            return
        except Exception as e:
            error = ConfigurationError(
                f"Failed to build request: {e}",
                provider=session.provider,
                request_id=session.request_id,
            )
            error.__cause__ = e
            await self._fail(session, sink, error)
            return

        if cancellation is not None and cancellation.cancelled:
            await self._finish_cancelled(session, sink, cancellation.reason)
            return

        session.transition(TransportState.CONNECTING)
        logger.info(
            "Opening stream",
            method=request.method,
            url=redact_url(request.url),
            scan_mode=self.adapter.scan_mode.value,
        )

        client = self._client or httpx.AsyncClient(timeout=self._timeout or get_http_timeout())
        response: Optional[httpx.Response] = None
        chunks: Optional[AsyncIterator[bytes]] = None
        try:
            result = await self._race(client.send(self._to_httpx(client, request), stream=True), cancellation)
            if result is _CANCELLED:
                await self._finish_cancelled(session, sink, cancellation.reason)
                return
            response = result

            if not response.is_success:
                await self._fail(session, sink, await self._http_error(session, response))
                return

            session.transition(TransportState.STREAMING)
            chunks = response.aiter_bytes()
            if not await self._read_loop(session, sink, chunks, cancellation):
                return

            session.transition(TransportState.FINALIZING)
            await self._finalize(session, sink)

        except UniStreamError as e:
            await self._fail(session, sink, e)
        except httpx.HTTPError as e:
            await self._fail(session, sink, map_transport_exception(e, session.provider, session.request_id))
        except Exception as e:
            if session.state.is_terminal:
                raise
            logger.exception("Unexpected error while streaming", error_type=type(e).__name__)
            error = map_transport_exception(e, session.provider, session.request_id)
            error.__cause__ = e
            await self._fail(session, sink, error)
        finally:
            await self._release(chunks, response)
            if self._client is None:
                await client.aclose()

    async def _read_loop(
        self,
        session: StreamSession,
        sink: Sink,
        chunks: AsyncIterator[bytes],
        cancellation: Optional[CancellationToken],
    ) -> bool:
        """
        Read until end of transport.

        Returns False when the session reached a terminal state.
        """
        while True:
            if cancellation is not None and cancellation.cancelled:
                await self._finish_cancelled(session, sink, cancellation.reason)
                return False

            chunk = await self._race(_next_chunk(chunks), cancellation)
            if chunk is _CANCELLED:
                await self._finish_cancelled(session, sink, cancellation.reason)
                return False
            if chunk is None:
                return True
            if not chunk:
                continue

            for frame in session.scanner.feed(chunk):
                if cancellation is not None and cancellation.cancelled:
                    break
                if not await self._dispatch(session, sink, frame):
                    return False

    async def _finalize(self, session: StreamSession, sink: Sink):
        """Drain the scanner, then send the completion event."""
        for frame in session.scanner.flush():
            if not await self._dispatch(session, sink, frame):
                session.failed_while_finalizing = True
                return

        session.transition(TransportState.COMPLETED)
        logger.info(
            "Stream completed",
            chunks=session.chunks_sent,
            content_chars=len(session.accumulated_content),
            duration_ms=round(session.elapsed * 1000, 2),
        )
        await self._emit_terminal(
            session,
            sink,
            SinkEvent(
                chunk="",
                done=True,
                model=session.model,
                full_content=session.accumulated_content,
                request_id=session.request_id,
            ),
        )

    async def _dispatch(self, session: StreamSession, sink: Sink, frame: str) -> bool:
        """
        Classify one frame and act on it.

        Returns False when the frame ended the session.
        """
        try:
            event = self.adapter.classify_frame(frame)
        except Exception as e:
            event = StreamEvent.decode_failure(f"Error parsing stream data: {e}")

        self.metrics.record_frame(session.provider, event.type.value)

        if event.carries_text:
            if event.text:
                session.append(event.text)
                await deliver_event(
                    sink,
                    SinkEvent(
                        chunk=event.text,
                        done=False,
                        model=session.model,
                        is_thinking=event.type == EventType.THINKING,
                        request_id=session.request_id,
                    ),
                )
            return True

        if event.type == EventType.ERROR:
            if event.malformed:
                # Corrupt data would otherwise be rescanned forever
                session.scanner.reset()
                error: UniStreamError = DecodeError(
                    event.message,
                    provider=session.provider,
                    request_id=session.request_id,
                    partial_content=session.accumulated_content,
                )
            else:
                error = ProviderError(
                    event.message,
                    provider=session.provider,
                    request_id=session.request_id,
                    partial_content=session.accumulated_content,
                )
            await self._fail(session, sink, error)
            return False

        if event.type == EventType.DONE:
            logger.debug("End-of-message marker received; waiting for end of stream")
        return True

    # ============================================================
    # Terminal Paths
    # ============================================================

    async def _fail(self, session: StreamSession, sink: Sink, error: UniStreamError):
        if session.state.is_terminal:
            return
        session.error = error
        session.transition(TransportState.FAILED)
        logger.error(
            "Stream failed",
            error_code=error.error.code,
            error_message=error.message,
            chunks=session.chunks_sent,
        )
        await self._emit_terminal(
            session,
            sink,
            SinkEvent(
                chunk="",
                done=True,
                model=session.model,
                error=error.message,
                request_id=session.request_id,
            ),
        )

    async def _finish_cancelled(self, session: StreamSession, sink: Sink, reason: Optional[str]):
        if session.state.is_terminal:
            return
        session.error = CancellationError(CANCELLED_MESSAGE, request_id=session.request_id)
        session.transition(TransportState.CANCELLED)
        logger.info("Stream cancelled", reason=reason or CANCELLED_MESSAGE, chunks=session.chunks_sent)
        await self._emit_terminal(
            session,
            sink,
            SinkEvent(
                chunk="",
                done=True,
                model=session.model,
                error=CANCELLED_MESSAGE,
                request_id=session.request_id,
            ),
        )

    async def _emit_terminal(self, session: StreamSession, sink: Sink, event: SinkEvent):
        if session.terminal_sent:
            logger.warning("Suppressed second terminal event", state=session.state.value)
            return
        session.terminal_sent = True
        await deliver_event(sink, event)

    # ============================================================
    # I/O Helpers
    # ============================================================

    @staticmethod
    def _to_httpx(client: httpx.AsyncClient, request: ProviderRequest) -> httpx.Request:
        return client.build_request(
            request.method,
            request.url,
            headers=dict(request.headers),
            content=request.body,
        )

    @staticmethod
    async def _race(awaitable: Awaitable[Any], cancellation: Optional[CancellationToken]) -> Any:
        """Await an operation unless the cancellation token fires first."""
        if cancellation is None:
            return await awaitable

        operation = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(cancellation.wait())
        try:
            await asyncio.wait({operation, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except BaseException:
            operation.cancel()
            raise
        finally:
            waiter.cancel()

        if operation.done():
            return operation.result()

        operation.cancel()
        try:
            await operation
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.debug("Pending read failed after cancellation", error_message=str(e))
        return _CANCELLED

    async def _http_error(self, session: StreamSession, response: httpx.Response) -> UpstreamHTTPError:
        body = await response.aread()
        message = extract_api_error_message(response.status_code, response.reason_phrase, body)
        return UpstreamHTTPError(session.provider, response.status_code, message, session.request_id)

    @staticmethod
    async def _release(chunks: Optional[AsyncIterator[bytes]], response: Optional[httpx.Response]):
        """Close the byte iterator and the response on every exit path."""
        if chunks is not None:
            aclose = getattr(chunks, "aclose", None)
            if aclose is not None:
                try:
                    await aclose()
                except RuntimeError as e:
                    logger.debug("Byte iterator already closed", error_message=str(e))
        if response is not None:
            await response.aclose()

    def _record(self, session: StreamSession):
        self.metrics.record_stream(
            provider=session.provider,
            model=session.model,
            outcome=session.state.value,
            duration_seconds=session.elapsed,
        )
        if session.time_to_first_chunk is not None:
            self.metrics.record_time_to_first_token(
                session.provider, session.model, session.time_to_first_chunk
            )
