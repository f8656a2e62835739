"""
Health endpoints and response hardening.
"""


def test_health(anon):
    assert anon.get("/health").json() == {"status": "healthy"}


def test_db_health(anon):
    body = anon.get("/health/db").json()
    assert body["status"] == "healthy"
    assert body["database"]["dialect"] == "sqlite"


def test_security_headers_on_api_routes(anon):
    response = anon.get("/services")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["Cache-Control"] == "no-store"
