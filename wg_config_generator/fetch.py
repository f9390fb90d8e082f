import json
import logging
import threading
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter

from .context import Context
from .errors import CancellationError, DecodeError, NetworkError, UnexpectedStatusError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
CHUNK_SIZE = 64 * 1024
JSON_HEADERS = {"Content-Type": "application/json"}


def new_session(pool_maxsize: int = 10) -> requests.Session:
    session = requests.Session()
    adapter = HTTPAdapter(pool_connections=pool_maxsize, pool_maxsize=pool_maxsize, max_retries=0)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def get_json(
    session: requests.Session,
    ctx: Context,
    url: str,
    *,
    what: str,
    params: Optional[Mapping[str, str]] = None,
    auth: Optional[Tuple[str, str]] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Any:
    """GET `url` and decode its JSON body.

    `what` names the resource in error messages. The request runs on a
    worker thread so that cancelling `ctx` returns control to the caller
    at once, whatever stage the request is in; an open response is closed
    on cancellation, which also stops a body read in progress.
    """
    ctx.raise_if_cancelled(f"fetching {what}")
    inflight: Dict[str, Any] = {}

    def request() -> bytes:
        request_timeout = ctx.timeout(timeout)
        if request_timeout <= 0:
            raise CancellationError(f"fetching {what}: context cancelled")
        logger.debug("GET %s (%s)", url, what)
        try:
            response = session.get(
                url,
                params=params,
                auth=auth,
                headers=JSON_HEADERS,
                timeout=request_timeout,
                stream=True,
            )
        except requests.exceptions.RequestException as e:
            ctx.raise_if_cancelled(f"fetching {what}")
            raise NetworkError(f"fetching {what}: {e}") from e

        inflight["response"] = response
        with response:
            ctx.raise_if_cancelled(f"fetching {what}")
            if response.status_code != 200:
                raise UnexpectedStatusError(response.status_code, f"fetching {what}")
            chunks: List[bytes] = []
            try:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    ctx.raise_if_cancelled(f"fetching {what}")
                    chunks.append(chunk)
            except requests.exceptions.RequestException as e:
                ctx.raise_if_cancelled(f"fetching {what}")
                raise NetworkError(f"reading {what}: {e}") from e
        return b"".join(chunks)

    body = _run_cancellable(ctx, f"fetching {what}", request, inflight)
    logger.debug("received %d bytes for %s", len(body), what)
    try:
        return json.loads(body)
    except ValueError as e:
        raise DecodeError(f"decoding {what}: {e}") from e


def _run_cancellable(ctx: Context, what: str, call: Callable[[], bytes], inflight: Dict[str, Any]) -> bytes:
    done = threading.Event()
    wake = threading.Event()
    outcome: Dict[str, Any] = {}

    def worker() -> None:
        try:
            outcome["value"] = call()
        except BaseException as e:  # re-raised on the calling thread
            outcome["error"] = e
        finally:
            done.set()
            wake.set()

    unregister = ctx.add_cancel_callback(wake.set)
    try:
        threading.Thread(target=worker, name="wgcg-get", daemon=True).start()
        while not done.is_set():
            if ctx.cancelled:
                response = inflight.get("response")
                if response is not None:
                    response.close()
                logger.debug("%s: abandoned on cancellation", what)
                raise CancellationError(f"{what}: context cancelled")
            wake.wait(ctx.remaining())
    finally:
        unregister()

    if "error" in outcome:
        raise outcome["error"]
    return outcome["value"]
