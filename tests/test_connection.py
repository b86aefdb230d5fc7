import io
import json
from unittest.mock import Mock

import pytest
import requests
from requests.auth import HTTPBasicAuth

from helpers import DummyResponse, make_post
from wpclient import Category, Connection, Media, Post, RequestTimeoutError, ServerError, ValidationError
from wpclient.connection import encode_params


def make_connection(*responses):
    session = Mock()
    session.request.side_effect = list(responses)
    return Connection("http://example.com/", "user", "secret", timeout=5, session=session), session


def test_session_uses_basic_auth():
    connection, session = make_connection()
    assert isinstance(session.auth, HTTPBasicAuth)
    assert session.auth.username == "user"
    assert session.auth.password == "secret"
    assert "secret" not in repr(connection)


def test_get_parses_model():
    connection, session = make_connection(DummyResponse(make_post(id=5)))

    post = connection.get(Post, "posts/5", _embed=True, context="edit")

    assert post.id == 5
    method, url = session.request.call_args.args
    assert method == "GET"
    assert url == "http://example.com/wp-json/wp/v2/posts/5"
    assert session.request.call_args.kwargs["params"] == {"_embed": "true", "context": "edit"}
    assert session.request.call_args.kwargs["timeout"] == 5


def test_get_multiple_requires_list():
    connection, _ = make_connection(DummyResponse({"id": 1}))
    with pytest.raises(ServerError):
        connection.get_multiple(Category, "terms/category")


def test_encode_params_flattens_filters():
    params = encode_params({
        "page": 2,
        "per_page": 13,
        "_embed": True,
        "force": False,
        "skip": None,
        "filter": {"tag": "my-cat", "category_name": "my-dog"},
    })
    assert params == {
        "page": "2",
        "per_page": "13",
        "_embed": "true",
        "force": "false",
        "filter[tag]": "my-cat",
        "filter[category_name]": "my-dog",
    }


def test_create_follows_location():
    created = DummyResponse(status_code=201, headers={"Location": "http://example.com/wp-json/wp/v2/posts/9"})
    connection, session = make_connection(created, DummyResponse(make_post(id=9)))

    post = connection.create(Post, "posts", {"title": "Foo"}, redirect_params={"_embed": True})

    assert post.id == 9
    first, second = session.request.call_args_list
    assert first.args == ("POST", "http://example.com/wp-json/wp/v2/posts")
    assert json.loads(first.kwargs["data"]) == {"title": "Foo"}
    assert first.kwargs["headers"]["Content-Type"] == "application/json; charset=utf-8"
    assert second.args == ("GET", "http://example.com/wp-json/wp/v2/posts/9")
    assert second.kwargs["params"] == {"_embed": "true"}


def test_create_rejects_non_created_success():
    connection, _ = make_connection(DummyResponse({"id": 1}, status_code=200))
    with pytest.raises(ServerError, match="unexpected response"):
        connection.create(Post, "posts", {"title": "Foo"})


def test_create_without_response_surfaces_validation():
    body = json.dumps([{"code": "rest_invalid_param", "message": "Invalid term"}])
    connection, _ = make_connection(DummyResponse(status_code=400, body=body))
    with pytest.raises(ValidationError, match="Invalid term"):
        connection.create_without_response("posts/1/terms/category/3", {})


def test_delete_sends_query_params():
    connection, session = make_connection(DummyResponse({"deleted": True}))
    assert connection.delete("posts/1", {"force": True}) is True
    assert session.request.call_args.args[0] == "DELETE"
    assert session.request.call_args.kwargs["params"] == {"force": "true"}


def test_upload_streams_file_object():
    created = DummyResponse(status_code=201, headers={"Location": "http://example.com/wp-json/wp/v2/media/3"})
    media = {"id": 3, "title": {"rendered": "foo"}}
    connection, session = make_connection(created, DummyResponse(media))

    stream = io.BytesIO(b"hello world")
    result = connection.upload(Media, "media", stream, mime_type="text/plain", filename="foo.txt")

    assert result.id == 3
    upload = session.request.call_args_list[0]
    assert upload.kwargs["data"] is stream
    assert stream.tell() == 0
    assert upload.kwargs["headers"] == {
        "Content-Type": "text/plain",
        "Content-Disposition": 'attachment; filename="foo.txt"',
    }


def test_timeout_is_distinct_error():
    connection, _ = make_connection(requests.exceptions.ReadTimeout("slow"))
    with pytest.raises(RequestTimeoutError):
        connection.get(Post, "posts/1")


def test_connection_failure_is_server_error():
    connection, _ = make_connection(requests.exceptions.ConnectionError("refused"))
    with pytest.raises(ServerError) as exc:
        connection.get(Post, "posts/1")
    assert not isinstance(exc.value, RequestTimeoutError)
