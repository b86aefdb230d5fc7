import pytest

from helpers import make_post


@pytest.fixture
def post_data():
    return make_post()


@pytest.fixture
def post_with_metadata():
    data = make_post()
    data["_embedded"]["https://api.w.org/meta"] = [{"id": 2, "key": "foo", "value": "bar"}]
    return data
