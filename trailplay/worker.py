"""
Background Track Parsing

Parsing runs off the caller's thread through a ``concurrent.futures``
executor. Requests and responses are plain dict messages so that only
copies of plain data cross the process boundary:

    {"type": "PARSE_FILE", "payload": {"content", "name", "seed", "track_id"}}
    -> {"type": "PARSE_SUCCESS", "payload": <track payload>}
    -> {"type": "PARSE_ERROR", "payload": {"code", "message"}}
"""

import asyncio
import logging
from concurrent.futures import Executor, Future, ProcessPoolExecutor, ThreadPoolExecutor
from typing import Dict, Optional

import numpy as np

from . import constants
from . import parser
from . import telemetry
from .errors import ParseError, error_from_dict
from .models import Track

logger = logging.getLogger(__name__)

PARSE_FILE = "PARSE_FILE"
PARSE_SUCCESS = "PARSE_SUCCESS"
PARSE_ERROR = "PARSE_ERROR"


def parse_request(content: str, name: Optional[str] = None, seed: Optional[int] = None,
                  track_id: Optional[str] = None) -> Dict:
    return {
        "type": PARSE_FILE,
        "payload": {"content": content, "name": name, "seed": seed, "track_id": track_id},
    }


def handle_message(message: Dict) -> Dict:
    """
    Handle one worker request message.

    Runs in the worker. Parse failures become PARSE_ERROR responses; any
    other exception propagates through the future.

    Raises:
        ValueError: If the message type is not PARSE_FILE.
    """
    if message.get("type") != PARSE_FILE:
        raise ValueError(f"Unknown worker message type: {message.get('type')!r}")

    payload = message.get("payload") or {}
    rng = np.random.default_rng(payload.get("seed"))
    try:
        track = parser.parse_gpx(
            payload.get("content", ""),
            name=payload.get("name"),
            rng=rng,
            track_id=payload.get("track_id"),
        )
    except ParseError as exc:
        return {"type": PARSE_ERROR, "payload": exc.to_dict()}

    return {"type": PARSE_SUCCESS, "payload": telemetry.track_to_payload(track)}


def unwrap_response(response: Dict) -> Track:
    """
    Turn a worker response into a Track.

    Raises:
        ParseError: For PARSE_ERROR responses, rebuilt with the worker's code.
        ValueError: If the response type is unknown.
    """
    kind = response.get("type")
    if kind == PARSE_SUCCESS:
        return telemetry.track_from_payload(response["payload"])
    if kind == PARSE_ERROR:
        error = error_from_dict(response.get("payload") or {})
        logger.warning("Parse worker failed: %s (%s)", error, error.code)
        raise error
    raise ValueError(f"Unknown worker response type: {kind!r}")


def make_executor(kind: str = constants.PARSE_EXECUTOR,
                  max_workers: int = constants.PARSE_WORKERS) -> Executor:
    """Create a process or thread pool for parsing."""
    workers = max(1, int(max_workers))
    if kind == "process":
        return ProcessPoolExecutor(max_workers=workers)
    if kind == "thread":
        return ThreadPoolExecutor(max_workers=workers)
    raise ValueError(f"Unknown parse executor kind: {kind!r}")


class BackgroundParser:
    """
    Submits parse requests to an executor and rehydrates the results.

    Args:
        executor: Executor to use. When omitted, one is created from
            ``kind`` and ``max_workers`` and owned (shut down) by this parser.
        kind: "process" or "thread".
        max_workers: Pool size.
    """

    def __init__(self, executor: Optional[Executor] = None,
                 kind: str = constants.PARSE_EXECUTOR,
                 max_workers: int = constants.PARSE_WORKERS):
        self._owns_executor = executor is None
        self.executor = executor if executor is not None else make_executor(kind, max_workers)

    def submit(self, content: str, name: Optional[str] = None, seed: Optional[int] = None,
               track_id: Optional[str] = None) -> Future:
        """Queue a parse; the future resolves to the raw response message."""
        return self.executor.submit(handle_message, parse_request(content, name, seed, track_id))

    def parse(self, content: str, name: Optional[str] = None, seed: Optional[int] = None,
              timeout: Optional[float] = None) -> Track:
        """Parse and wait for the resulting Track."""
        return unwrap_response(self.submit(content, name, seed).result(timeout=timeout))

    async def parse_async(self, content: str, name: Optional[str] = None,
                          seed: Optional[int] = None) -> Track:
        """Parse without blocking the running event loop."""
        response = await asyncio.wrap_future(self.submit(content, name, seed))
        return unwrap_response(response)

    def shutdown(self, cancel_pending: bool = True) -> None:
        if self._owns_executor:
            self.executor.shutdown(wait=True, cancel_futures=cancel_pending)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()
        return False
