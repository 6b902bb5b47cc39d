# SPDX-License-Identifier: Apache-2.0
"""
Client: call pipeline state machine.

`advance` is checked on its own; `CallPipeline` runs over the fake stub and
records which steps ran.
"""

import warnings

import grpc
import pytest
from pymilvus.grpc_gen import milvus_pb2

from milvus_sdk.client.connection import ConnectParam, MilvusConnection
from milvus_sdk.client.pipeline import CallPipeline, CallState, advance
from milvus_sdk.core.status import InvalidArgument, Status, StatusCode
from tests.mock.fake_milvus_service import FakeRpcError, failed_status, rate_limited_status

OK = Status.success()
FAIL = Status.error(StatusCode.SERVER_FAILED, "boom")


# --------------------------------------------------------------------------- #
# transitions
# --------------------------------------------------------------------------- #

@pytest.mark.parametrize(
    "state, has_wait, has_post, expected",
    [
        (CallState.VALIDATING, True, True, CallState.SENDING),
        (CallState.SENDING, True, True, CallState.WAITING),
        (CallState.SENDING, False, True, CallState.POST_PROCESSING),
        (CallState.SENDING, False, False, CallState.DONE),
        (CallState.WAITING, True, True, CallState.POST_PROCESSING),
        (CallState.WAITING, True, False, CallState.DONE),
        (CallState.POST_PROCESSING, True, True, CallState.DONE),
    ],
)
def test_pipeline_advance_on_success(state, has_wait, has_post, expected):
    assert advance(state, OK, has_wait=has_wait, has_post=has_post) is expected


@pytest.mark.parametrize("state", [CallState.VALIDATING, CallState.SENDING, CallState.WAITING, CallState.POST_PROCESSING])
def test_pipeline_any_failure_is_terminal(state):
    assert advance(state, FAIL) is CallState.FAILED


def test_pipeline_terminal_states_do_not_move():
    assert advance(CallState.DONE, FAIL) is CallState.DONE
    assert advance(CallState.FAILED, OK) is CallState.FAILED
    assert CallState.DONE.terminal and CallState.FAILED.terminal
    assert not CallState.SENDING.terminal


# --------------------------------------------------------------------------- #
# pipeline runs
# --------------------------------------------------------------------------- #

class Steps:
    """Records which optional steps the pipeline ran."""

    def __init__(self, wait_status=OK):
        self.ran = []
        self.wait_status = wait_status

    def validate(self):
        self.ran.append("validate")
        return OK

    def wait(self, response):
        self.ran.append("wait")
        return self.wait_status

    def post(self, response):
        self.ran.append("post")
        return response.value


def _request():
    return milvus_pb2.HasCollectionRequest(collection_name="docs")


def test_pipeline_runs_every_step_in_order(connection, stub, metrics):
    stub.script("HasCollection", milvus_pb2.BoolResponse(value=True))
    steps = Steps()
    status, result = CallPipeline(connection, metrics).invoke(
        "has_collection", "HasCollection", _request,
        validate=steps.validate, wait_for_status=steps.wait, post_process=steps.post,
    )
    assert status.ok
    assert result is True
    assert steps.ran == ["validate", "wait", "post"]
    assert metrics.ops() == ["has_collection"]
    assert metrics.observations[0]["ok"] is True
    assert metrics.observations[0]["component"] == "milvus_client"


def test_pipeline_validation_failure_sends_nothing(connection, stub, metrics):
    built = []

    def build():
        built.append(True)
        return _request()

    status, result = CallPipeline(connection, metrics).invoke(
        "has_collection", "HasCollection", build,
        validate=lambda: Status.error(StatusCode.INVALID_ARGUMENT, "collection name is empty"),
    )
    assert status.code == StatusCode.INVALID_ARGUMENT
    assert result is None
    assert built == []
    assert stub.calls == []
    assert metrics.observations[0]["code"] == "INVALID_ARGUMENT"


def test_pipeline_build_errors_become_status(connection, stub):
    def build():
        raise InvalidArgument("row count mismatch")

    status, _ = CallPipeline(connection).invoke("insert", "Insert", build)
    assert status.code == StatusCode.INVALID_ARGUMENT
    assert status.message == "row count mismatch"
    assert stub.calls == []


def test_pipeline_server_failure_skips_wait_and_post(connection, stub):
    stub.script("HasCollection", milvus_pb2.BoolResponse(status=failed_status("collection not found", code=100)))
    steps = Steps()
    status, result = CallPipeline(connection).invoke(
        "has_collection", "HasCollection", _request, wait_for_status=steps.wait, post_process=steps.post,
    )
    assert status.code == StatusCode.SERVER_FAILED
    assert status.message == "collection not found"
    assert result is None
    assert steps.ran == []


def test_pipeline_wait_failure_skips_post(connection, stub):
    stub.script("HasCollection", milvus_pb2.BoolResponse(value=True))
    steps = Steps(wait_status=Status.error(StatusCode.TIMEOUT, "time out"))
    status, result = CallPipeline(connection).invoke(
        "has_collection", "HasCollection", _request, wait_for_status=steps.wait, post_process=steps.post,
    )
    assert status.code == StatusCode.TIMEOUT
    assert result is None
    assert steps.ran == ["wait"]


def test_pipeline_without_post_returns_no_result(connection, stub):
    stub.script("DropCollection", failed_status("", code=0))
    status, result = CallPipeline(connection).invoke(
        "drop_collection", "DropCollection", lambda: milvus_pb2.DropCollectionRequest(collection_name="docs"),
    )
    assert status.ok
    assert result is None


def test_pipeline_requires_a_connected_session(stub, metrics):
    status, result = CallPipeline(None, metrics).invoke("has_collection", "HasCollection", _request)
    assert status.code == StatusCode.NOT_CONNECTED
    assert result is None

    closed = MilvusConnection(ConnectParam())
    status, _ = CallPipeline(closed).invoke("has_collection", "HasCollection", _request)
    assert status.code == StatusCode.NOT_CONNECTED
    assert metrics.observations[0]["code"] == "NOT_CONNECTED"


def test_pipeline_counts_retries(connection, stub, metrics):
    stub.script(
        "HasCollection",
        milvus_pb2.BoolResponse(status=rate_limited_status()),
        FakeRpcError(grpc.StatusCode.UNAVAILABLE, "connection refused"),
        milvus_pb2.BoolResponse(value=False),
    )
    status, result = CallPipeline(connection, metrics).invoke(
        "has_collection", "HasCollection", _request, post_process=lambda r: r.value,
    )
    assert status.ok
    assert result is False
    assert [c["name"] for c in metrics.counters] == ["rpc_retries", "rpc_retries"]
    assert metrics.counters[0]["extra"] == {"op": "has_collection"}


def test_pipeline_deadline_override(connection, stub):
    stub.default("HasCollection", milvus_pb2.BoolResponse(value=True))
    CallPipeline(connection).invoke("has_collection", "HasCollection", _request, deadline_ms=1500)
    assert stub.calls[0].timeout == 1.5


def test_pipeline_module_compiles_without_warnings():
    import milvus_sdk.client.pipeline as pipeline

    with open(pipeline.__file__, encoding="utf-8") as f:
        source = f.read()
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        compile(source, pipeline.__file__, "exec")
