# SPDX-License-Identifier: Apache-2.0
"""
Client: credentials, roles and privileges.
"""

import base64

import pytest
from pymilvus.grpc_gen import milvus_pb2

from milvus_sdk.core.status import InvalidArgument
from milvus_sdk.types.schema import GrantItem, RoleDesc, UserDesc
from tests.mock.fake_milvus_service import ok_status


def _b64(text):
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def test_client_credentials_are_sent_base64_encoded(client, stub):
    for method in ("CreateCredential", "UpdateCredential", "DeleteCredential"):
        stub.default(method, ok_status())
    client.create_credential("alice", "pa55word")
    client.update_credential("alice", "pa55word", "n3w")
    client.delete_credential("alice")

    assert stub.requests("CreateCredential")[0].password == _b64("pa55word")
    update = stub.requests("UpdateCredential")[0]
    assert (update.oldPassword, update.newPassword) == (_b64("pa55word"), _b64("n3w"))
    assert stub.requests("DeleteCredential")[0].username == "alice"
    with pytest.raises(InvalidArgument):
        client.create_credential("", "x")


def test_client_list_users(client, stub):
    stub.script("ListCredUsers", milvus_pb2.ListCredUsersResponse(usernames=["root", "alice"]))
    assert client.list_users() == ["root", "alice"]


def test_client_role_membership(client, stub):
    for method in ("CreateRole", "DropRole", "OperateUserRole"):
        stub.default(method, ok_status())
    client.create_role("reader")
    client.add_user_to_role("alice", "reader")
    client.remove_user_from_role("alice", "reader")
    client.drop_role("reader")

    assert stub.requests("CreateRole")[0].entity.name == "reader"
    kinds = [r.type for r in stub.requests("OperateUserRole")]
    assert kinds == [milvus_pb2.OperateUserRoleType.AddUserToRole, milvus_pb2.OperateUserRoleType.RemoveUserFromRole]
    with pytest.raises(InvalidArgument):
        client.add_user_to_role("alice", "")


def test_client_select_role_and_user(client, stub):
    stub.script(
        "SelectRole",
        milvus_pb2.SelectRoleResponse(results=[
            milvus_pb2.RoleResult(
                role=milvus_pb2.RoleEntity(name="reader"),
                users=[milvus_pb2.UserEntity(name="alice"), milvus_pb2.UserEntity(name="bob")],
            ),
        ]),
    )
    stub.script(
        "SelectUser",
        milvus_pb2.SelectUserResponse(results=[
            milvus_pb2.UserResult(user=milvus_pb2.UserEntity(name="alice"), roles=[milvus_pb2.RoleEntity(name="reader")]),
        ]),
    )
    assert client.select_role("reader") == RoleDesc(name="reader", users=["alice", "bob"])
    assert client.select_user("alice") == UserDesc(name="alice", roles=["reader"])
    assert stub.requests("SelectRole")[0].include_user_info


def test_client_grant_and_revoke_privilege(client, stub):
    stub.default("OperatePrivilege", ok_status())
    grant = GrantItem(role_name="reader", object_type="Collection", object_name="docs", privilege="Search")
    client.use_database("sales")
    client.grant_privilege(grant)
    client.revoke_privilege(grant)

    first, second = stub.requests("OperatePrivilege")
    assert first.type == milvus_pb2.OperatePrivilegeType.Grant
    assert second.type == milvus_pb2.OperatePrivilegeType.Revoke
    entity = first.entity
    assert (entity.role.name, entity.object.name, entity.object_name) == ("reader", "Collection", "docs")
    assert entity.grantor.privilege.name == "Search"
    assert entity.db_name == "sales"


def test_client_grant_requires_every_part(client, stub):
    with pytest.raises(InvalidArgument):
        client.grant_privilege(GrantItem(role_name="reader", object_type="Collection", object_name="", privilege="Search"))
    assert stub.calls == []


def test_client_list_grants(client, stub):
    stub.script(
        "SelectGrant",
        milvus_pb2.SelectGrantResponse(entities=[
            milvus_pb2.GrantEntity(
                role=milvus_pb2.RoleEntity(name="reader"),
                object=milvus_pb2.ObjectEntity(name="Collection"),
                object_name="docs",
                db_name="default",
                grantor=milvus_pb2.GrantorEntity(privilege=milvus_pb2.PrivilegeEntity(name="Query")),
            ),
        ]),
    )
    grants = client.list_grants("reader")
    assert grants == [GrantItem("reader", "Collection", "docs", "Query", "default")]
    assert stub.requests("SelectGrant")[0].entity.role.name == "reader"
