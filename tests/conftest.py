"""Shared test fixtures."""

import pytest

from shipmail import EmailSender
from shipmail.providers.mock import MockEmailProvider
from shiptrack.config import Settings
from shiptrack.notifications import DEFAULT_TEMPLATES_DIR, ShipmentNotifier
from shiptrack.service import ShipmentService
from shiptrack.storage.sqlite import SQLiteShipmentStore
from shiptrack.web import create_app
from shiptrack.web.auth import issue_token

TRACK_BASE_URL = "https://track.example.com/track"


@pytest.fixture
def settings(tmp_path):
    """Settings isolated from the network and the working directory."""
    return Settings(
        storage={"backend": "sqlite", "sqlite_path": str(tmp_path / "shiptrack.db")},
        auth={"secret_key": "test-secret", "admin_username": "admin", "admin_password": "s3cret"},
        email={"track_base_url": TRACK_BASE_URL, "ethereal_enabled": False},
        rate_limit={"enabled": False},
    )


@pytest.fixture
def store(tmp_path):
    """Create a temporary SQLite store."""
    return SQLiteShipmentStore(str(tmp_path / "store.db"))


@pytest.fixture
def mock_provider():
    return MockEmailProvider("no-reply@example.com", "Shiptrack")


@pytest.fixture
def notifier(mock_provider):
    sender = EmailSender(str(DEFAULT_TEMPLATES_DIR), [mock_provider])
    return ShipmentNotifier(sender, track_base_url=TRACK_BASE_URL, app_name="shiptrack")


@pytest.fixture
def service(store, notifier):
    return ShipmentService(store, notifier)


@pytest.fixture
def app(settings, store, notifier):
    app = create_app(settings, store=store, notifier=notifier)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(settings):
    """Authorization header carrying a valid admin token."""
    token = issue_token(settings.auth, "admin")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def shipment_payload():
    """A create payload as the admin form posts it."""
    return {
        "status": "pending",
        "estimatedDeliveryDate": "2030-05-01T12:00:00Z",
        "origin": {
            "city": "Lagos",
            "state": "Lagos",
            "country": "Nigeria",
            "coordinates": {"lat": 6.5244, "lng": 3.3792},
        },
        "destination": {"city": "Accra", "country": "Ghana"},
        "sender": {"name": "Ada Obi", "email": "ada@example.com", "phone": "+234 800 000 0000"},
        "receiver": {"name": "Kwame Mensah", "email": "kwame@example.com", "address": "12 Ring Road"},
        "packageName": "Laptop",
        "weight": 2.5,
        "package": {"name": "ignored", "category": "Electronics"},
    }


@pytest.fixture
def sample_template(tmp_path):
    """Create a sample template."""
    template_dir = tmp_path / "templates"
    template_dir.mkdir()

    (template_dir / "test.yaml").write_text(
        'name: Test Email\n'
        'subject: "Hello {{ name }}"\n'
        'required_variables: [name]\n'
        'optional_variables: [company]\n'
        'has_html: true\n'
        'has_text: true\n'
    )
    (template_dir / "test.jinja2").write_text(
        "<html><body><h1>Hello {{ name }}!</h1>"
        "{% if company %}<p>Company: {{ company }}</p>{% endif %}</body></html>"
    )
    (template_dir / "test.text.jinja2").write_text(
        "Hello {{ name }}!\n{% if company %}Company: {{ company }}{% endif %}"
    )
    return template_dir
