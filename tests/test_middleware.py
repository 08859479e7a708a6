"""
Unit tests for request logging helpers
"""

import pytest

from socialgraph.logging import (
    clear_request_context,
    generate_request_id,
    get_request_id,
    set_request_context,
)
from socialgraph.middleware import operation_name_from_query, sanitize_query_params


class TestOperationNameFromQuery:
    @pytest.mark.parametrize(
        ("query", "expected"),
        [
            ("query UsersWithPosts { users { id } }", "UsersWithPosts"),
            ("mutation CreateUser($dto: CreateUserInput!) { createUser(dto: $dto) { id } }",
             "mutation:CreateUser"),
            ("{ users { id } }", "unnamed_operation"),
            ("mutation { deleteUser(id: \"x\") }", "mutation:unnamed_operation"),
            ("query IntrospectionQuery { __schema { types { name } } }", "__introspection"),
        ],
    )
    def test_extracts_name(self, query, expected):
        assert operation_name_from_query(query) == expected


def test_sanitize_query_params_redacts_secrets():
    params = {"api_key": "abc", "Authorization": "Bearer x", "page": "2"}

    assert sanitize_query_params(params) == {
        "api_key": "[REDACTED]",
        "Authorization": "[REDACTED]",
        "page": "2",
    }


def test_request_context_round_trip():
    request_id = set_request_context(graphql_operation="UsersWithPosts")

    assert request_id
    assert get_request_id() == request_id

    clear_request_context()
    assert get_request_id() is None


def test_explicit_request_id_is_kept():
    assert set_request_context(request_id="req-1") == "req-1"
    clear_request_context()


def test_generated_request_ids_are_unique():
    ids = {generate_request_id() for _ in range(20)}
    assert len(ids) == 20
    assert all(len(request_id) == 14 for request_id in ids)
