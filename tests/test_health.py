import threading
from http import HTTPStatus
from wsgiref.util import setup_testing_defaults

import pytest

from gitbuilder.circuit import Circuit, CircuitState
from gitbuilder.health import (
    circuit_state,
    healthz_status,
    list_buckets,
    list_namespaces,
    make_healthz_app,
)


class EmptyBucketLister:
    def __init__(self):
        self.paths = []

    def list(self, path):
        self.paths.append(path)
        return None


class ErrBucketLister:
    def list(self, path):
        raise RuntimeError("test error")


class BlockingBucketLister:
    def __init__(self):
        self.release = threading.Event()

    def list(self, path):
        self.release.wait(5)
        return []


class StaticNamespaceLister:
    def list(self):
        return ["app1", "app2"]


class ErrNamespaceLister:
    def list(self):
        raise RuntimeError("test error")


def closed_circuit():
    circuit = Circuit()
    circuit.close()
    return circuit


def call_app(app, path):
    environ = {}
    setup_testing_defaults(environ)
    environ["PATH_INFO"] = path
    captured = {}

    def start_response(status, headers):
        captured["status"] = status
        captured["headers"] = headers

    body = b"".join(app(environ, start_response))
    return captured["status"], body


def test_circuit_state_closed():
    assert circuit_state(closed_circuit()) is CircuitState.CLOSED


def test_circuit_state_open_raises():
    with pytest.raises(RuntimeError, match="SSH Server is not yet started"):
        circuit_state(Circuit())


def test_list_buckets_lists_root():
    lister = EmptyBucketLister()
    assert list_buckets(lister) is None
    assert lister.paths == ["/"]


def test_list_namespaces():
    assert list_namespaces(StaticNamespaceLister()) == ["app1", "app2"]


def test_list_namespaces_error():
    with pytest.raises(RuntimeError, match="test error"):
        list_namespaces(ErrNamespaceLister())


def test_healthz_circuit_open():
    status, body = call_app(make_healthz_app(EmptyBucketLister(), Circuit()), "/healthz")
    assert status.startswith("503")
    assert len(body) == 0


def test_healthz_bucket_list_err():
    status, body = call_app(make_healthz_app(ErrBucketLister(), closed_circuit()), "/healthz")
    assert status.startswith("503")
    assert len(body) == 0


def test_healthz_success():
    status, body = call_app(make_healthz_app(EmptyBucketLister(), closed_circuit()), "/healthz")
    assert status.startswith("200")
    assert len(body) == 0


def test_healthz_unknown_path():
    status, _ = call_app(make_healthz_app(EmptyBucketLister(), closed_circuit()), "/other")
    assert status.startswith("404")


def test_healthz_status_values():
    assert healthz_status(EmptyBucketLister(), closed_circuit()) is HTTPStatus.OK
    assert healthz_status(ErrBucketLister(), closed_circuit()) is HTTPStatus.SERVICE_UNAVAILABLE
    assert healthz_status(EmptyBucketLister(), Circuit()) is HTTPStatus.SERVICE_UNAVAILABLE


def test_healthz_status_timeout():
    lister = BlockingBucketLister()
    try:
        assert healthz_status(lister, closed_circuit(), timeout=0.05) is HTTPStatus.SERVICE_UNAVAILABLE
    finally:
        lister.release.set()