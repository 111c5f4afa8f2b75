"""Health check for the builder: the SSH server is up and object storage answers."""

from __future__ import annotations

import logging
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from datetime import timedelta
from http import HTTPStatus
from typing import Any, Callable, Iterable, Protocol

from gitbuilder.circuit import Circuit, CircuitState

logger = logging.getLogger(__name__)

WAIT_TIMEOUT = 10.0


class BucketLister(Protocol):
    def list(self, path: str) -> Any: ...


class NamespaceLister(Protocol):
    def list(self) -> Any: ...


def circuit_state(circuit: Circuit) -> CircuitState:
    """Return the circuit's state if it is closed; raise RuntimeError otherwise."""
    state = circuit.state
    if state is not CircuitState.CLOSED:
        raise RuntimeError("SSH Server is not yet started")
    return state


def list_buckets(bucket_lister: BucketLister) -> Any:
    """List the objects at the root of the object store."""
    return bucket_lister.list("/")


def list_namespaces(namespace_lister: NamespaceLister) -> Any:
    """List every namespace known to the cluster."""
    return namespace_lister.list()


def _seconds(value: float | timedelta) -> float:
    return value.total_seconds() if isinstance(value, timedelta) else float(value)


def healthz_status(
    bucket_lister: BucketLister,
    circuit: Circuit,
    timeout: float | timedelta = WAIT_TIMEOUT,
) -> HTTPStatus:
    """Run the health checks side by side and return the HTTP status they add up to.

    Any failing check, or checks still running after ``timeout``, give 503.
    """
    executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="healthz")
    try:
        checks: dict[Future[Any], str] = {
            executor.submit(circuit_state, circuit): "getting server state",
            executor.submit(list_buckets, bucket_lister): "listing buckets",
        }
        done, pending = wait(checks, timeout=_seconds(timeout), return_when=FIRST_EXCEPTION)
        for future in done:
            exc = future.exception()
            if exc is not None:
                logger.warning("Healthcheck error %s (%s)", checks[future], exc)
                return HTTPStatus.SERVICE_UNAVAILABLE
        if pending:
            logger.warning("Healthcheck endpoint timed out after %ss", _seconds(timeout))
            return HTTPStatus.SERVICE_UNAVAILABLE
        return HTTPStatus.OK
    finally:
        executor.shutdown(wait=False, cancel_futures=True)


def make_healthz_app(
    bucket_lister: BucketLister, circuit: Circuit
) -> Callable[[dict[str, Any], Callable[..., Any]], Iterable[bytes]]:
    """A WSGI application that answers health checks on ``/healthz``."""

    def app(environ: dict[str, Any], start_response: Callable[..., Any]) -> Iterable[bytes]:
        if environ.get("PATH_INFO", "") != "/healthz":
            body = b"404 page not found\n"
            start_response(
                f"{HTTPStatus.NOT_FOUND.value} {HTTPStatus.NOT_FOUND.phrase}",
                [("Content-Type", "text/plain; charset=utf-8"), ("Content-Length", str(len(body)))],
            )
            return [body]
        status = healthz_status(bucket_lister, circuit)
        start_response(f"{status.value} {status.phrase}", [("Content-Length", "0")])
        return []

    return app