def test_docs_accessible(client):
    r = client.get("/docs")
    assert r.status_code == 200


def test_cors_allows_configured_origin(client):
    r = client.options("/token", headers={
        "Origin": "http://localhost:5173",
        "Access-Control-Request-Method": "POST",
    })
    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == "http://localhost:5173"


def test_protected_routes_require_bearer(client):
    for path in ("/attendance/today", "/tasks", "/leaves", "/users"):
        r = client.get(path)
        assert r.status_code == 401
        assert r.headers["www-authenticate"] == "Bearer"
