import json
import logging
from logging.handlers import TimedRotatingFileHandler

from fastapi import FastAPI
from fastapi.testclient import TestClient

from helpdesk.app_logging import init_logging


def _flush(*names):
    for name in names:
        for handler in logging.getLogger(name).handlers:
            handler.flush()


def _last_line(path):
    return path.read_text().splitlines()[-1]


def test_each_logger_gets_its_own_rotating_file(log_dir, monkeypatch):
    monkeypatch.setenv("LOG_RETENTION_DAYS", "5")
    monkeypatch.setenv("LOG_ROTATE_UTC", "true")
    app = FastAPI()

    init_logging(app)

    for name, filename in (("helpdesk", "helpdesk.log"), ("uvicorn.access", "access.log")):
        (handler,) = logging.getLogger(name).handlers
        assert isinstance(handler, TimedRotatingFileHandler)
        assert handler.when == "MIDNIGHT"
        assert handler.backupCount == 5
        assert handler.utc is True
        assert handler.baseFilename == str(log_dir / filename)
    assert app.logger is logging.getLogger("helpdesk")


def test_reinitialising_keeps_app_handler_and_rebuilds_access(log_dir):
    access_logger = logging.getLogger("uvicorn.access")
    console = logging.StreamHandler()
    access_logger.addHandler(console)

    init_logging()
    init_logging()

    assert len(logging.getLogger("helpdesk").handlers) == 1
    assert console not in access_logger.handlers
    assert len(access_logger.handlers) == 1


def test_log_level_from_environment(log_dir, monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "debug")
    init_logging()
    assert logging.getLogger("helpdesk").level == logging.DEBUG

    monkeypatch.setenv("LOG_LEVEL", "chatty")
    init_logging()
    assert logging.getLogger("helpdesk").level == logging.INFO


def test_module_loggers_write_json_lines(log_dir, monkeypatch):
    monkeypatch.setenv("LOG_JSON", "true")
    init_logging()

    logging.getLogger("helpdesk.agents.routing").warning("Routing failed for %r", "hi")
    _flush("helpdesk")

    record = json.loads(_last_line(log_dir / "helpdesk.log"))
    assert record["level"] == "WARNING"
    assert record["logger"] == "helpdesk.agents.routing"
    assert record["message"] == "Routing failed for 'hi'"


def test_json_lines_include_tracebacks(log_dir, monkeypatch):
    monkeypatch.setenv("LOG_JSON", "true")
    init_logging()

    try:
        raise RuntimeError("tool exploded")
    except RuntimeError:
        logging.getLogger("helpdesk.streaming").exception("Stream failed")
    _flush("helpdesk")

    record = json.loads(_last_line(log_dir / "helpdesk.log"))
    assert "RuntimeError: tool exploded" in record["exc_info"]


def test_access_log_file_is_redacted(log_dir, monkeypatch):
    monkeypatch.setenv("LOG_REQUEST_BODIES", "true")
    app = FastAPI()

    @app.post("/api/conversations")
    async def create(payload: dict):
        return {"ok": True}

    init_logging(app)
    logging.getLogger("helpdesk").info("service started")

    with TestClient(app) as client:
        resp = client.post(
            "/api/conversations",
            json={"initial_message": "Where is ORD-1234?", "token": "abc"},
            headers={"Authorization": "Bearer secret", "X-User-Id": "user-7"},
        )
    assert resp.status_code == 200
    _flush("helpdesk", "uvicorn.access")

    assert "service started" in (log_dir / "helpdesk.log").read_text()
    entry = json.loads(_last_line(log_dir / "access.log").split(": ", 1)[1])
    assert entry["user_id"] == "user-7"
    assert entry["headers"]["authorization"] == "***"
    assert entry["body"] == {"initial_message": "<18 chars>", "token": "***"}
    assert entry["stream"] is False
    assert "ORD-1234" not in (log_dir / "access.log").read_text()
