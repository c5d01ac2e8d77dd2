import pytest

import settings
from app import app as flask_app


@pytest.fixture
def app(tmp_path):
    flask_app.config.update(
        TESTING=True,
        DATA_DIR=str(tmp_path / "data"),
        HEADER_FORMAT="delimited",
        MAX_OUTPUT_SIZE=settings.MAX_OUTPUT_MB * 1024 * 1024,
    )
    yield flask_app


@pytest.fixture
def client(app):
    return app.test_client()
