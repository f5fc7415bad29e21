import pytest

from app.peerreview import create_app
from app.peerreview.config import load_settings
from app.peerreview.context import build_context


@pytest.fixture()
def settings(tmp_path, monkeypatch):
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("RUN_ENV", "test")
    for k in ("JWT_ISSUER", "JWT_TTL_SECONDS"):
        monkeypatch.delenv(k, raising=False)
    return load_settings()


@pytest.fixture()
def ctx(settings):
    ctx = build_context(settings)
    ctx.db.create_all()
    yield ctx
    ctx.db.close()


@pytest.fixture()
def app(ctx):
    app = create_app(ctx)
    app.config["TESTING"] = True
    return app


@pytest.fixture()
def client(app):
    return app.test_client()
