from datetime import timedelta

import pytest

from gitbuilder.receive_config import ReceiveConfig, load_receive_config

REQUIRED = {
    "DEIS_CONTROLLER_SERVICE_HOST": "controller.local",
    "DEIS_CONTROLLER_SERVICE_PORT": "8000",
    "DEIS_REGISTRY_SERVICE_HOST": "registry.local",
    "DEIS_REGISTRY_SERVICE_PORT": "5000",
    "GIT_HOME": "/home/git",
    "SSH_CONNECTION": "10.0.0.1 5555 10.0.0.2 2223",
    "SSH_ORIGINAL_COMMAND": "git-receive-pack 'myapp.git'",
    "REPOSITORY": "myapp.git",
    "USERNAME": "alice",
    "FINGERPRINT": "00:11:22:33",
    "POD_NAMESPACE": "deis",
    "SLUGBUILDER_IMAGE_NAME": "slugbuilder:latest",
    "DOCKERBUILDER_IMAGE_NAME": "dockerbuilder:latest",
}


@pytest.mark.parametrize(
    "given, expected",
    [
        ((100, 300000, 500, 300000), (100, 300000, 500, 300000)),
        ((0, 300000, 500, 300000), (100, 300000, 500, 300000)),
        ((100, 300000, 0, 300000), (100, 300000, 500, 300000)),
        ((300000, 300000, 500, 300000), (100, 300000, 500, 300000)),
        ((100, 300000, 300000, 300000), (100, 300000, 500, 300000)),
    ],
)
def test_check_durations(given, expected):
    cnf = ReceiveConfig(
        builder_pod_tick_duration_msec=given[0],
        builder_pod_wait_duration_msec=given[1],
        object_storage_tick_duration_msec=given[2],
        object_storage_wait_duration_msec=given[3],
    )
    cnf.check_durations()
    assert (
        cnf.builder_pod_tick_duration_msec,
        cnf.builder_pod_wait_duration_msec,
        cnf.object_storage_tick_duration_msec,
        cnf.object_storage_wait_duration_msec,
    ) == expected


@pytest.mark.parametrize(
    "repository, app",
    [("myapp.git", "myapp"), ("a.b.c", "a.b"), ("noext", "noext"), ("", "")],
)
def test_app(repository, app):
    assert ReceiveConfig(repository=repository).app == app


def test_durations_are_milliseconds():
    cnf = ReceiveConfig(
        builder_pod_tick_duration_msec=250,
        builder_pod_wait_duration_msec=2000,
        object_storage_tick_duration_msec=500,
        object_storage_wait_duration_msec=3000,
        session_idle_interval_msec=10000,
    )
    assert cnf.builder_pod_tick_duration == timedelta(milliseconds=250)
    assert cnf.builder_pod_wait_duration == timedelta(seconds=2)
    assert cnf.object_storage_tick_duration == timedelta(milliseconds=500)
    assert cnf.object_storage_wait_duration == timedelta(seconds=3)
    assert cnf.session_idle_interval == timedelta(seconds=10)


def test_load_defaults():
    cnf = load_receive_config(REQUIRED)
    assert cnf.repository == "myapp.git"
    assert cnf.registry_proxy_port == "5555"
    assert cnf.registry_location == "on-cluster"
    assert cnf.registry_secret_prefix == "private-registry"
    assert cnf.storage_type == "minio"
    assert cnf.builder_pod_wait_duration_msec == 900000
    assert cnf.debug is False
    assert cnf.docker_builder_image_pull_policy == "Always"
    assert cnf.builder_pod_node_selector == ""


def test_load_overrides():
    env = dict(REQUIRED, DEIS_DEBUG="true", BUILDER_POD_TICK_DURATION="250", BUILDER_STORAGE="s3")
    cnf = load_receive_config(env)
    assert cnf.debug is True
    assert cnf.builder_pod_tick_duration_msec == 250
    assert cnf.storage_type == "s3"


def test_load_missing_required():
    env = dict(REQUIRED)
    del env["GIT_HOME"]
    with pytest.raises(ValueError, match="GIT_HOME"):
        load_receive_config(env)


@pytest.mark.parametrize(
    "var, raw", [("SESSION_IDLE_INTERVAL", "soon"), ("DEIS_DEBUG", "yes")]
)
def test_load_bad_value(var, raw):
    with pytest.raises(ValueError, match=var):
        load_receive_config(dict(REQUIRED, **{var: raw}))