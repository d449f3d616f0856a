import os
import sys
from pathlib import Path

os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from api import create_app  # noqa: E402
from services.mailer import Mailer  # noqa: E402

MEMBER_EMAIL = "bob@example.com"
MEMBER_PASSWORD = "correct-horse-battery"


class RecordingMailer(Mailer):
    """Keeps every reset mail instead of sending it."""

    def __init__(self, result=True, exc=None):
        self.sent = []
        self.result = result
        self.exc = exc

    def send_password_reset(self, email, link):
        self.sent.append((email, link))
        if self.exc is not None:
            raise self.exc
        return self.result


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def app(tmp_path, mailer):
    app = create_app(
        "testing",
        overrides={"DATABASE_URL": f"sqlite:///{tmp_path / 'test.db'}"},
        mailer=mailer,
    )
    yield app
    app.extensions["services"].storage.dispose()


@pytest.fixture
def services(app):
    return app.extensions["services"]


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def member(services):
    """A registered member with a known password."""
    return services.users.create_user(
        email=MEMBER_EMAIL,
        password_hash=services.hasher.hash(MEMBER_PASSWORD),
        firstname="Bob",
        lastname="Builder",
        roles=["Member"],
    )


@pytest.fixture
def admin(services):
    return services.users.create_user(
        email="alice@example.com",
        password_hash=services.hasher.hash("alice-password-1"),
        firstname="Alice",
        lastname="Admin",
        roles=["Admin", "Member"],
    )
