"""
Transform Client Port: the boundary to the external query/transform backend.

``TransformClient`` is the interface the executor depends on. The backend is
always injected; nothing here is looked up from process-wide state.

``HTTPTransformClient`` is a concrete port speaking the JSON transform API
over HTTP with ``requests``.

Contract:
    - One logical request per evaluation; responses are keyed by ref_id.
    - Every failure raises ``RemoteExecutionError``.
    - Cancellation or an exhausted deadline raises ``ExecutionCancelledError``.
    - No retries at this layer.
"""

from __future__ import annotations

import concurrent.futures
import logging
from abc import ABC, abstractmethod
from typing import Any

import requests
from pydantic import ValidationError

from ngalert.eval.config import Settings
from ngalert.eval.context import AlertExecCtx
from ngalert.eval.errors import ExecutionCancelledError, RemoteExecutionError
from ngalert.eval.models import DataResponse, TransformRequest, TransformResponse

logger = logging.getLogger(__name__)

TRANSFORM_PATH = "/api/transform"

# How often an in-flight request checks for cancellation, in seconds
CANCEL_POLL_SECONDS = 0.05


class TransformClient(ABC):
    """Abstract transform backend."""

    @abstractmethod
    def send(
        self, ctx: AlertExecCtx, request: TransformRequest
    ) -> dict[str, DataResponse]:
        """Execute the request and return raw results keyed by ref_id.

        Implementations must honor ``ctx`` cancellation and deadline.

        Raises
        ------
        ExecutionCancelledError
            If ``ctx`` was cancelled or its deadline passed.
        RemoteExecutionError
            On any other failure.
        """
        ...


class HTTPTransformClient(TransformClient):
    """Transform backend reached over HTTP.

    Parameters
    ----------
    base_url : str
        Root URL of the transform service.
    api_key : str or None
        Bearer token sent in the ``Authorization`` header.
    timeout : float
        Upper bound in seconds for a single call. The context deadline
        shortens it further when tighter.
    session : requests.Session or None
        Session to reuse. A new one is created when omitted.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self._url = base_url.rstrip("/") + TRANSFORM_PATH
        self._timeout = timeout
        self._session = session or requests.Session()
        self._headers: dict[str, str] = {"Content-Type": "application/json"}
        if api_key:
            self._headers["Authorization"] = f"Bearer {api_key}"

    def _call_timeout(self, ctx: AlertExecCtx) -> float:
        remaining = ctx.remaining()
        if remaining is None:
            return self._timeout
        return min(self._timeout, remaining)

    def _post(self, body: dict[str, Any], timeout: float) -> requests.Response:
        return self._session.post(
            self._url, json=body, headers=self._headers, timeout=timeout
        )

    def _wait_for(
        self, ctx: AlertExecCtx, future: concurrent.futures.Future
    ) -> requests.Response:
        # The cancel signal is polled while the request runs on a worker thread
        while not future.done():
            concurrent.futures.wait([future], timeout=CANCEL_POLL_SECONDS)
            if not future.done():
                ctx.check()
        return future.result()

    def send(
        self, ctx: AlertExecCtx, request: TransformRequest
    ) -> dict[str, DataResponse]:
        ctx.check()

        body = request.model_dump(mode="json", by_alias=True)
        pool = concurrent.futures.ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="transform"
        )
        try:
            future = pool.submit(self._post, body, self._call_timeout(ctx))
            resp = self._wait_for(ctx, future)
        except requests.Timeout as exc:
            if ctx.expired():
                raise ExecutionCancelledError(
                    f"transform request exceeded the execution deadline: {exc}"
                ) from exc
            raise RemoteExecutionError(f"transform request timed out: {exc}") from exc
        except requests.RequestException as exc:
            raise RemoteExecutionError(f"transform request failed: {exc}") from exc
        finally:
            # An abandoned request finishes on its own thread; its response is dropped
            pool.shutdown(wait=False)

        # A response that lands after cancellation is discarded
        ctx.check()

        if resp.status_code >= 400:
            raise RemoteExecutionError(
                f"transform backend returned HTTP {resp.status_code}: "
                f"{resp.text[:500]}"
            )

        try:
            payload: Any = resp.json()
            parsed = TransformResponse.model_validate(payload)
        except (ValueError, ValidationError) as exc:
            raise RemoteExecutionError(
                f"malformed transform response: {exc}"
            ) from exc

        logger.debug(
            "Transform backend returned %d responses: %s",
            len(parsed.responses),
            sorted(parsed.responses),
        )
        return parsed.responses


def create_transform_client(settings: Settings) -> TransformClient:
    """Create the HTTP transform client described by ``settings``."""
    api_key = (
        settings.transform_api_key.get_secret_value()
        if settings.transform_api_key
        else None
    )
    return HTTPTransformClient(
        base_url=settings.transform_url,
        api_key=api_key,
        timeout=settings.transform_timeout_seconds,
    )
