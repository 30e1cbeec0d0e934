# src/drill_api/tests/test_logging/test_middleware_integration.py
import json
import logging

from fastapi import FastAPI
from starlette.testclient import TestClient

from drill_api.config.settings import Settings
from drill_api.core.logging.builder import setup_logging
from drill_api.core.logging.middleware import RequestIDMiddleware, resolve_request_id


def test_resolve_request_id():
    assert resolve_request_id("trace-1.a:b") == "trace-1.a:b"
    assert resolve_request_id("line\nbreak") != "line\nbreak"
    assert len(resolve_request_id(None)) == 36  # uuid4


def test_request_id_in_response_and_logs_stdout(tmp_path, capsys):
    settings = Settings(ENV="production", LOG_FORMAT="json", LOG_LEVEL="INFO", LOG_TO_STDOUT=True, LOG_DIR=tmp_path)
    setup_logging(settings)

    app = FastAPI()
    app.add_middleware(RequestIDMiddleware)

    @app.get("/hello")
    def hello():
        logging.getLogger("drill_api").info("handling hello")
        return {"ok": True}

    client = TestClient(app)
    resp = client.get("/hello")
    assert resp.status_code == 200

    rid = resp.headers.get("X-Request-ID")
    assert rid is not None

    # Each console line is a JSON object (LOG_FORMAT=json); StreamHandler writes to stderr
    stderr = capsys.readouterr().err.strip()
    assert stderr, "Expected logs on stderr but nothing was captured."

    found = False
    for line in stderr.splitlines():
        try:
            rec = json.loads(line)
        except ValueError:
            continue
        if rec.get("request_id") == rid and rec.get("message") == "handling hello":
            found = True
            break

    assert found, "No log line on stderr with the response's request_id"
