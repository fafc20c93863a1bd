from unittest.mock import MagicMock

import pytest
import requests

from intranet_reconciler.exceptions import StoreError, TransportError
from intranet_reconciler.repository.supabase import SupabaseRestClient
from tests.fakes import make_settings


def make_response(status_code=200, body=None, text=None):
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.ok = status_code < 400
    response.reason = "reason"
    if body is None and text is None:
        response.content = b""
        response.text = ""
        response.json.side_effect = ValueError("no body")
    elif body is not None:
        response.content = b"{}"
        response.text = str(body)
        response.json.return_value = body
    else:
        response.content = text.encode()
        response.text = text
        response.json.side_effect = ValueError("not json")
    return response


@pytest.fixture
def session():
    mock_session = MagicMock(spec=requests.Session)
    mock_session.headers = {}
    return mock_session


@pytest.fixture
def client(session):
    return SupabaseRestClient(
        "https://proj.supabase.co/rest/v1/", "secret-key", timeout=5.0, session=session
    )


def test_sets_bearer_credential_headers(client, session):
    assert session.headers["apikey"] == "secret-key"
    assert session.headers["Authorization"] == "Bearer secret-key"
    assert client.base_url == "https://proj.supabase.co/rest/v1"


def test_from_settings_uses_rest_endpoint():
    settings = make_settings(SUPABASE_URL="https://abc.supabase.co/", REQUEST_TIMEOUT=3)

    client = SupabaseRestClient.from_settings(settings)

    assert client.base_url == "https://abc.supabase.co/rest/v1"
    assert client.timeout == 3
    assert client.session.headers["apikey"] == "test_service_role_key"
    client.close()


def test_select_builds_postgrest_query(client, session):
    session.request.return_value = make_response(body=[{"has_completed": False}])

    rows = client.select("active_students", columns="has_completed")

    assert rows == [{"has_completed": False}]
    session.request.assert_called_once_with(
        "GET",
        "https://proj.supabase.co/rest/v1/active_students",
        params={"select": "has_completed", "limit": 1},
        json=None,
        headers=None,
        timeout=5.0,
    )


def test_upsert_merges_duplicates_on_conflict_column(client, session):
    session.request.return_value = make_response(201, body=[{"student_id": "k"}])

    client.upsert("active_students", {"student_id": "k"}, on_conflict="student_id")

    args, kwargs = session.request.call_args
    assert args == ("POST", "https://proj.supabase.co/rest/v1/active_students")
    assert kwargs["params"] == {"on_conflict": "student_id"}
    assert "resolution=merge-duplicates" in kwargs["headers"]["Prefer"]


def test_rpc_posts_payload(client, session):
    session.request.return_value = make_response(204)

    assert client.rpc("exec_sql", {"query": "SELECT 1"}) is None

    args, kwargs = session.request.call_args
    assert args == ("POST", "https://proj.supabase.co/rest/v1/rpc/exec_sql")
    assert kwargs["json"] == {"query": "SELECT 1"}


def test_delete_requires_filters(client, session):
    with pytest.raises(ValueError):
        client.delete("active_students", {})
    session.request.assert_not_called()


def test_network_failure_is_transport_error(client, session):
    session.request.side_effect = requests.ConnectionError("dns failure")

    with pytest.raises(TransportError, match="dns failure"):
        client.select("active_students")


def test_auth_rejection_is_transport_error(client, session):
    session.request.return_value = make_response(
        401, body={"message": "Invalid API key"}
    )

    with pytest.raises(TransportError, match="Invalid API key"):
        client.select("active_students")


def test_postgrest_error_body_is_parsed(client, session):
    session.request.return_value = make_response(
        400,
        body={
            "code": "42703",
            "message": "column active_students.has_completed does not exist",
            "details": None,
            "hint": None,
        },
    )

    with pytest.raises(StoreError) as exc_info:
        client.select("active_students", columns="has_completed")

    error = exc_info.value
    assert error.status_code == 400
    assert error.code == "42703"
    assert error.is_absence
    assert str(error) == (
        "HTTP 400 42703: column active_students.has_completed does not exist"
    )


def test_non_json_error_body(client, session):
    session.request.return_value = make_response(502, text="Bad Gateway")

    with pytest.raises(StoreError) as exc_info:
        client.rpc("create_student_exams_table")

    assert exc_info.value.message == "Bad Gateway"
    assert not exc_info.value.is_absence
