# SPDX-License-Identifier: Apache-2.0
"""
Client: insert, upsert, delete and flush.
"""

import pytest
from pymilvus.grpc_gen import milvus_pb2, schema_pb2

from milvus_sdk.client.milvus_client import MilvusClient
from milvus_sdk.core.status import InvalidArgument, NotConnected, ServerFailed
from milvus_sdk.types.data_type import DataType
from milvus_sdk.types.fields import FloatVecFieldData, Int8FieldData, Int64FieldData, VarCharFieldData
from milvus_sdk.types.ids import IDArray
from milvus_sdk.types.schema import CollectionSchema, FieldSchema
from milvus_sdk.wire.marshal import from_wire
from milvus_sdk.wire.schema import schema_to_wire
from tests.mock.fake_milvus_service import failed_status, rate_limited_status


def _fields():
    return [
        Int64FieldData("id", [1, 2]),
        FloatVecFieldData("vec", [[0.5, 0.25], [1.0, 2.0]]),
    ]


def _mutation(ids, **counts):
    return milvus_pb2.MutationResult(IDs=schema_pb2.IDs(int_id=schema_pb2.LongArray(data=ids)), timestamp=99, **counts)


# --------------------------------------------------------------------------- #
# insert / upsert
# --------------------------------------------------------------------------- #

def test_client_insert_marshals_columns(client, stub):
    stub.script("Insert", _mutation([1, 2], insert_cnt=2))
    result = client.insert("docs", _fields(), partition_name="p1")
    assert result.ids == IDArray(int_ids=(1, 2))
    assert (result.insert_count, result.timestamp) == (2, 99)

    request = stub.requests("Insert")[0]
    assert (request.collection_name, request.partition_name, request.num_rows) == ("docs", "p1", 2)
    assert [fd.field_name for fd in request.fields_data] == ["id", "vec"]
    assert from_wire(request.fields_data[1]).data == [[0.5, 0.25], [1.0, 2.0]]


@pytest.mark.parametrize(
    "fields",
    [
        [],
        [Int64FieldData("id", [1, 2]), VarCharFieldData("title", ["only one"])],
        [Int64FieldData("id", [1]), Int64FieldData("id", [2])],
        [Int64FieldData("id")],
    ],
)
def test_client_insert_rejects_bad_columns_locally(client, stub, fields):
    with pytest.raises(InvalidArgument):
        client.insert("docs", fields)
    assert stub.calls == []


def test_client_insert_marshaling_error_sends_nothing(client, stub):
    with pytest.raises(InvalidArgument, match="out of range"):
        client.insert("docs", [Int64FieldData("id", [1]), Int8FieldData("tiny", [1000])])
    assert stub.calls == []


def test_client_insert_retries_when_rate_limited(client, stub):
    stub.script(
        "Insert",
        milvus_pb2.MutationResult(status=rate_limited_status()),
        _mutation([1, 2], insert_cnt=2),
    )
    assert client.insert("docs", _fields()).insert_count == 2
    assert stub.count("Insert") == 2


def test_client_insert_server_failure(client, stub):
    stub.script("Insert", milvus_pb2.MutationResult(status=failed_status("field vec dim mismatch")))
    with pytest.raises(ServerFailed, match="dim mismatch"):
        client.insert("docs", _fields())


def test_client_upsert(client, stub):
    stub.script("Upsert", _mutation([1, 2], upsert_cnt=2))
    result = client.upsert("docs", _fields())
    assert result.upsert_count == 2
    assert stub.requests("Upsert")[0].num_rows == 2


# --------------------------------------------------------------------------- #
# delete
# --------------------------------------------------------------------------- #

def test_client_delete_by_filter(client, stub):
    stub.script("Delete", _mutation([], delete_cnt=3))
    assert client.delete("docs", filter="age > 30").delete_count == 3
    assert stub.requests("Delete")[0].expr == "age > 30"


def test_client_delete_by_ids_uses_primary_key_name(client, stub):
    schema = (
        CollectionSchema(name="docs")
        .add_field(FieldSchema("doc_id", DataType.VARCHAR, is_primary_key=True, max_length=64))
        .add_field(FieldSchema("vec", DataType.FLOAT_VECTOR, dimension=2))
    )
    stub.script("DescribeCollection", milvus_pb2.DescribeCollectionResponse(schema=schema_to_wire(schema)))
    stub.script("Delete", _mutation([], delete_cnt=2))
    client.delete("docs", ids=["a", "b"])
    assert stub.methods() == ["DescribeCollection", "Delete"]
    assert stub.requests("Delete")[0].expr == 'doc_id in ["a","b"]'


@pytest.mark.parametrize("kwargs", [{}, {"filter": "id > 0", "ids": [1]}])
def test_client_delete_needs_exactly_one_selector(client, stub, kwargs):
    with pytest.raises(InvalidArgument):
        client.delete("docs", **kwargs)
    assert stub.calls == []


def test_client_delete_checks_connection_before_selector():
    with pytest.raises(NotConnected):
        MilvusClient().delete("docs")
    with pytest.raises(NotConnected):
        MilvusClient().delete("docs", filter="id > 0", ids=[1])


# --------------------------------------------------------------------------- #
# flush
# --------------------------------------------------------------------------- #

def test_client_flush_waits_for_every_segment(client, stub):
    response = milvus_pb2.FlushResponse()
    response.coll_segIDs["docs"].data.extend([10, 11, 12])
    response.coll_segIDs["logs"].data.extend([20, 21])
    stub.script("Flush", response)

    polls = {}

    def flush_state(request):
        polls[request.collection_name] = polls.get(request.collection_name, 0) + 1
        done = polls[request.collection_name] >= (2 if request.collection_name == "docs" else 1)
        return milvus_pb2.GetFlushStateResponse(flushed=done)

    stub.default("GetFlushState", flush_state)
    client.flush(["docs", "logs"])
    assert list(stub.requests("Flush")[0].collection_names) == ["docs", "logs"]
    assert polls == {"docs": 2, "logs": 1}


def test_client_flush_requires_collections(client, stub):
    with pytest.raises(InvalidArgument):
        client.flush([])
    assert stub.calls == []


def test_client_get_flush_state(client, stub):
    stub.script("GetFlushState", milvus_pb2.GetFlushStateResponse(flushed=True))
    assert client.get_flush_state([1, 2], collection_name="docs") is True
    assert list(stub.requests("GetFlushState")[0].segmentIDs) == [1, 2]
