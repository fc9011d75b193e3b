import re
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from app import create_app
from config import Config
from models import db
from models.user import Role, User
from security.password import hash_password


class RecordingMessenger:
    """Stands in for SMTP/SMS delivery and keeps every message."""

    def __init__(self):
        self.sent = []
        self.delivered = True

    def send(self, target, channel, subject, body):
        self.sent.append(SimpleNamespace(target=target, channel=channel, subject=subject, body=body))
        return self.delivered

    def last_code(self) -> str:
        assert self.sent, "nothing was sent"
        return re.search(r"\b(\d{6})\b", self.sent[-1].body).group(1)


class FrozenClock:
    def __init__(self):
        self.now = datetime.utcnow().replace(microsecond=0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def messenger():
    return RecordingMessenger()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def app(tmp_path, messenger, clock):
    class Settings(Config):
        TESTING = True
        CREATE_TABLES = True
        SQLALCHEMY_DATABASE_URI = "sqlite:///" + str(tmp_path / "test.db")
        SQLALCHEMY_ENGINE_OPTIONS = {"connect_args": {"timeout": 30, "check_same_thread": False}}
        BCRYPT_ROUNDS = 4
        SMTP_HOST = None
        SMS_GATEWAY_URL = None

    app = create_app(Settings, messenger=messenger)
    app.extensions["otp_clock"] = clock
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield


@pytest.fixture
def make_account(app):
    def _make(email=None, phone=None, password="Secret123", admin=False):
        with app.app_context():
            user = User(email=email, phone=phone, password_hash=hash_password(password))
            names = ["USER", "ADMIN"] if admin else ["USER"]
            user.roles.extend(Role.query.filter(Role.name.in_(names)).all())
            db.session.add(user)
            db.session.commit()
            return user.id
    return _make
