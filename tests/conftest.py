import pytest
from datetime import datetime, timezone, date
from acc_platform import create_app
from acc_platform.extensions import db

config_dict = {
    "TESTING": True,
    "DATABASE_URL": "sqlite://",
    "SQLALCHEMY_ENGINE_OPTIONS": {},
    "STRIPE_SECRET_KEY": "sk_test_123",
    "APP_ENABLE_CORS": True,
    "APP_TRIGGER_RETRIES_BURST_COUNT": 1,
    "APP_ADMIN_SUBJECT_REGEX": "^acc-admin$",
    "APP_SUPERVISOR_SUBJECT_REGEX": "^acc-supervisor$",
    "APP_USER_SUBJECT_REGEX": "^users:([0-9]+)$",
}


@pytest.fixture(scope="module")
def app():
    """Get a Flask application object."""

    app = create_app(config_dict)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope="function")
def db_session(app):
    """Get a Flask-SQLAlchmey session, with an automatic cleanup."""

    yield db.session

    # Cleanup:
    db.session.remove()
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())

    db.session.commit()


@pytest.fixture(scope="function")
def current_ts():
    return datetime.now(tz=timezone.utc)


@pytest.fixture(scope="function")
def current_date():
    return date(2024, 6, 15)
