import json


class DummyResponse:
    def __init__(self, data=None, status_code=200, headers=None, body=None):
        self.status_code = status_code
        if body is None:
            body = json.dumps(data) if data is not None else ""
        self.content = body.encode() if isinstance(body, str) else body
        self.headers = {"Content-Type": "application/json; charset=UTF-8"}
        self.headers.update(headers or {})


def make_post(**overrides):
    data = {
        "id": 1,
        "slug": "hello-world",
        "link": "http://example.com/2015/11/03/hello-world/",
        "guid": {"rendered": "http://example.com/?p=1"},
        "status": "publish",
        "title": {"rendered": "Hello world!"},
        "excerpt": {"rendered": "<p>Welcome to WordPress.</p>\n"},
        "content": {"rendered": "<p>Welcome to WordPress.</p>\n"},
        "date": "2015-11-03T16:25:41",
        "date_gmt": "2015-11-03T16:25:41",
        "modified": "2015-11-03T16:25:41",
        "modified_gmt": "2015-11-03T16:25:41",
        "categories": [1],
        "tags": [2],
        "featured_media": 0,
        "_embedded": {
            "https://api.w.org/term": [
                [{"id": 1, "name": "Uncategorized", "slug": "uncategorized", "taxonomy": "category"}],
                [{"id": 2, "name": "Foo", "slug": "foo", "taxonomy": "post_tag"}],
            ],
        },
    }
    data.update(overrides)
    return data
