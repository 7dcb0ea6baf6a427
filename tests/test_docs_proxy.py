import asyncio

import httpx
from fastapi import FastAPI
from fastapi.testclient import TestClient

from atomicdocs.config import AtomicDocsSettings
from atomicdocs.middleware.asgi import ASGIDocsMiddleware
from atomicdocs.middleware.wsgi import WSGIDocsMiddleware
from atomicdocs.proxy import DocsProxy

SPEC_BYTES = b'{"openapi":"3.0.0","paths":{"/users":{}}}'


class Upstream:
    def __init__(self, status=200, content_type="application/json", body=SPEC_BYTES):
        self.status = status
        self.content_type = content_type
        self.body = body
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        headers = {"content-type": self.content_type} if self.content_type else {}
        return httpx.Response(self.status, headers=headers, content=self.body)


def refused(request):
    raise httpx.ConnectError("connection refused", request=request)


def garbled_gzip(request):
    return httpx.Response(
        200,
        headers={"content-type": "text/html", "content-encoding": "gzip"},
        content=b"not gzip at all",
    )


def make_proxy(handler, **overrides):
    transport = httpx.MockTransport(handler)
    return DocsProxy(AtomicDocsSettings(**overrides), transport=transport, async_transport=transport)


def test_matches_only_reserved_paths():
    proxy = DocsProxy(AtomicDocsSettings())
    assert proxy.matches("/docs")
    assert proxy.matches("/docs/json")
    assert not proxy.matches("/docs/other")
    assert not proxy.matches("/users")
    assert not proxy.matches("/")


def test_fetch_relays_status_type_and_bytes():
    upstream = Upstream()
    result = make_proxy(upstream).fetch("/docs/json", 3000)

    assert result.status_code == 200
    assert result.content_type == "application/json"
    assert result.body == SPEC_BYTES

    sent = upstream.requests[0]
    assert sent.method == "GET"
    assert str(sent.url) == "http://localhost:6174/docs/json"
    assert sent.headers["X-App-Port"] == "3000"


def test_fetch_relays_non_200_verbatim():
    upstream = Upstream(status=404, content_type="application/json", body=b'{"error":"app not registered"}')
    result = make_proxy(upstream).fetch("/docs", 3000)
    assert (result.status_code, result.body) == (404, b'{"error":"app not registered"}')


def test_fetch_defaults_content_type_to_html():
    result = make_proxy(Upstream(content_type=None, body=b"<html></html>")).fetch("/docs", 3000)
    assert result.content_type == "text/html"


def test_fetch_unreachable_service_gives_503():
    result = make_proxy(refused).fetch("/docs", 3000)
    assert result.status_code == 503
    assert result.content_type.startswith("text/plain")
    assert result.body == b"AtomicDocs unavailable"


def test_fetch_undecodable_body_gives_503():
    result = make_proxy(garbled_gzip).fetch("/docs", 3000)
    assert result.status_code == 503
    assert result.body == b"AtomicDocs unavailable"


def test_afetch_undecodable_body_gives_503():
    result = asyncio.run(make_proxy(garbled_gzip).afetch("/docs", 3000))
    assert result.status_code == 503


def test_fetch_caps_body_size():
    result = make_proxy(Upstream(body=b"x" * 100), max_body_bytes=10).fetch("/docs", 3000)
    assert result.status_code == 502
    assert result.body == b"AtomicDocs response too large"


def test_fetch_without_port_sends_no_port_header():
    upstream = Upstream()
    make_proxy(upstream).fetch("/docs", None)
    assert "X-App-Port" not in upstream.requests[0].headers


def test_afetch_matches_fetch():
    upstream = Upstream()
    proxy = make_proxy(upstream)
    result = asyncio.run(proxy.afetch("/docs/json", 4000))
    assert (result.status_code, result.content_type, result.body) == (200, "application/json", SPEC_BYTES)
    assert upstream.requests[0].headers["X-App-Port"] == "4000"


def test_afetch_unreachable_service_gives_503():
    result = asyncio.run(make_proxy(refused).afetch("/docs", 4000))
    assert result.status_code == 503


def make_fastapi_app(proxy, app_port=None):
    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)
    app.add_middleware(ASGIDocsMiddleware, proxy=proxy, app_port=app_port)

    @app.get("/users")
    def users():
        return ["ada"]

    return app


def test_asgi_middleware_proxies_docs():
    upstream = Upstream()
    client = TestClient(make_fastapi_app(make_proxy(upstream), app_port=8000))

    resp = client.get("/docs/json")

    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/json"
    assert resp.content == SPEC_BYTES
    assert upstream.requests[0].headers["X-App-Port"] == "8000"


def test_asgi_middleware_passes_other_paths_through():
    upstream = Upstream()
    client = TestClient(make_fastapi_app(make_proxy(upstream)))

    resp = client.get("/users")

    assert resp.status_code == 200
    assert resp.json() == ["ada"]
    assert upstream.requests == []


def test_asgi_middleware_uses_server_port_when_unset():
    upstream = Upstream()
    client = TestClient(make_fastapi_app(make_proxy(upstream)))
    client.get("/docs")
    assert upstream.requests[0].headers["X-App-Port"] == "80"


def test_asgi_middleware_degrades_to_503():
    client = TestClient(make_fastapi_app(make_proxy(refused), app_port=8000))
    resp = client.get("/docs")
    assert resp.status_code == 503
    assert resp.text == "AtomicDocs unavailable"


def test_asgi_middleware_undecodable_body_gives_503():
    client = TestClient(make_fastapi_app(make_proxy(garbled_gzip), app_port=8000))
    resp = client.get("/docs")
    assert resp.status_code == 503
    assert resp.text == "AtomicDocs unavailable"


def _call_wsgi(app, path, port="5000"):
    captured = {}

    def start_response(status, headers):
        captured["status"] = status
        captured["headers"] = dict(headers)

    body = b"".join(app({"PATH_INFO": path, "SERVER_PORT": port, "REQUEST_METHOD": "GET"}, start_response))
    return captured["status"], captured["headers"], body


def _inner_wsgi(environ, start_response):
    start_response("200 OK", [("Content-Type", "text/plain")])
    return [b"host app"]


def test_wsgi_middleware_proxies_docs():
    upstream = Upstream()
    app = WSGIDocsMiddleware(_inner_wsgi, proxy=make_proxy(upstream))

    status, headers, body = _call_wsgi(app, "/docs/json")

    assert status == "200 OK"
    assert headers["Content-Type"] == "application/json"
    assert headers["Content-Length"] == str(len(SPEC_BYTES))
    assert body == SPEC_BYTES
    assert upstream.requests[0].headers["X-App-Port"] == "5000"


def test_wsgi_middleware_passes_other_paths_through():
    upstream = Upstream()
    app = WSGIDocsMiddleware(_inner_wsgi, proxy=make_proxy(upstream))
    assert _call_wsgi(app, "/users") == ("200 OK", {"Content-Type": "text/plain"}, b"host app")
    assert upstream.requests == []


def test_wsgi_middleware_degrades_to_503():
    app = WSGIDocsMiddleware(_inner_wsgi, proxy=make_proxy(refused), app_port=9000)
    status, _, body = _call_wsgi(app, "/docs")
    assert status == "503 Service Unavailable"
    assert body == b"AtomicDocs unavailable"
