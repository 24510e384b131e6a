import io
import json
from contextlib import redirect_stderr, redirect_stdout

from fastapi.testclient import TestClient


def _last_json_line(buf_out: io.StringIO, buf_err: io.StringIO, event: str) -> dict:
    raw = buf_err.getvalue().strip() or buf_out.getvalue().strip()
    lines = [ln for ln in raw.splitlines() if f'"event": "{event}"' in ln]
    assert lines, f"{event} log line not found"
    return json.loads(lines[-1])


def test_structlog_outputs_pure_json_without_stdlib_prefix() -> None:
    buf_out = io.StringIO()
    buf_err = io.StringIO()

    with redirect_stdout(buf_out), redirect_stderr(buf_err):
        from nihongo_srs.logging import configure_logging, logger

        configure_logging()
        logger.info("review_answered", item_id=3, quality=4, interval=6)

    data = _last_json_line(buf_out, buf_err, "review_answered")
    assert data["level"] in {"info", "INFO"}
    assert data["item_id"] == 3
    assert data["interval"] == 6
    assert "timestamp" in data


def test_credentials_are_masked() -> None:
    buf_out = io.StringIO()
    buf_err = io.StringIO()
    dsn = "https://0123456789abcdef@o1.ingest.sentry.io/42"

    with redirect_stdout(buf_out), redirect_stderr(buf_err):
        from nihongo_srs.logging import configure_logging, logger

        configure_logging()
        logger.info("config_dump", sentry_dsn=dsn, api_token="short")

    data = _last_json_line(buf_out, buf_err, "config_dump")
    assert data["sentry_dsn"] != dsn
    assert data["api_token"] == "***"


def test_request_complete_log_contains_request_id_and_status(tmp_path) -> None:
    buf_out = io.StringIO()
    buf_err = io.StringIO()

    with redirect_stdout(buf_out), redirect_stderr(buf_err):
        from nihongo_srs.main import create_app
        from nihongo_srs.store import SRSSQLiteStore, get_store

        app = create_app()
        app.dependency_overrides[get_store] = lambda: SRSSQLiteStore(str(tmp_path / "log.sqlite3"))
        with TestClient(app) as client:
            response = client.get("/healthz")
        assert response.status_code == 200

    data = _last_json_line(buf_out, buf_err, "request_complete")
    assert data["path"] == "/healthz"
    assert data["status_code"] == 200
    assert data["request_id"] == response.headers["X-Request-ID"]


def test_request_log_records_error_context() -> None:
    buf_out = io.StringIO()
    buf_err = io.StringIO()

    with redirect_stdout(buf_out), redirect_stderr(buf_err):
        from nihongo_srs.main import create_app

        app = create_app()

        @app.get("/boom")
        async def boom() -> None:  # pragma: no cover - 呼び出し側で検証
            raise RuntimeError("intentional failure")

        client = TestClient(app, raise_server_exceptions=False)
        response = client.get("/boom")
        assert response.status_code == 500

    data = _last_json_line(buf_out, buf_err, "request_complete")
    assert data["status_code"] == 500
    assert data["error_type"] == "RuntimeError"
    assert "intentional failure" in data["error_message"]
