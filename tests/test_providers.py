"""Tests for email providers with the network mocked out."""

import smtplib
from unittest.mock import MagicMock, Mock, patch

import pytest
import requests
from python_http_client.exceptions import HTTPError

from shipmail.models import EmailMessage, SendResult, SendStatus
from shipmail.providers.ethereal import EtherealProvider
from shipmail.providers.mailersend import MailerSendProvider
from shipmail.providers.mock import MockEmailProvider
from shipmail.providers.sendgrid import SendGridProvider
from shipmail.providers.smtp import SMTPProvider


@pytest.fixture
def message():
    return EmailMessage(
        recipient="user@example.com",
        subject="Shipment update",
        html_body="<p>Hi</p>",
        text_body="Hi",
        reply_to="support@example.com",
        metadata={"tracking_id": "TRANS1"},
    )


@pytest.fixture
def no_sleep():
    with patch("time.sleep") as sleep:
        yield sleep


class TestMimeMessage:

    def test_headers(self, message):
        provider = MockEmailProvider("no-reply@example.com", "Shiptrack")
        mime = provider._create_mime_message(message)

        assert mime["From"] == "Shiptrack <no-reply@example.com>"
        assert mime["To"] == "user@example.com"
        assert mime["Reply-To"] == "support@example.com"
        assert [part.get_content_type() for part in mime.get_payload()] == ["text/plain", "text/html"]


class TestSMTPProvider:

    @pytest.fixture
    def smtp_class(self):
        with patch("shipmail.providers.smtp.smtplib.SMTP") as smtp_class:
            yield smtp_class

    def _provider(self):
        return SMTPProvider(
            "no-reply@example.com",
            host="smtp.example.com",
            username="user",
            password="pass",
        )

    def test_send_success(self, smtp_class, message):
        server = smtp_class.return_value

        result = self._provider().send(message, correlation_id="c1")

        assert result.status == SendStatus.SUCCESS
        assert result.provider == "smtp"
        assert result.message_id
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("user", "pass")
        args = server.sendmail.call_args.args
        assert args[0] == "no-reply@example.com"
        assert args[1] == ["user@example.com"]
        server.quit.assert_called_once()

    def test_implicit_tls(self, message):
        with patch("shipmail.providers.smtp.smtplib.SMTP_SSL") as ssl_class:
            provider = SMTPProvider("no-reply@example.com", host="smtp.example.com", port=465, use_ssl=True)
            result = provider.send(message)

        assert result.ok
        ssl_class.assert_called_once()
        ssl_class.return_value.login.assert_not_called()

    def test_authentication_failure(self, smtp_class, message):
        smtp_class.return_value.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")

        result = self._provider().send(message)

        assert result.status == SendStatus.FAILED
        assert "login failed" in result.error_reason
        smtp_class.return_value.sendmail.assert_not_called()

    def test_transient_error_is_retried(self, smtp_class, message, no_sleep):
        smtp_class.return_value.sendmail.side_effect = [
            smtplib.SMTPServerDisconnected("dropped"),
            {},
        ]

        result = self._provider().send(message)

        assert result.ok
        assert smtp_class.return_value.sendmail.call_count == 2
        no_sleep.assert_called_once_with(1.0)

    def test_temporary_failure_code_is_retried(self, smtp_class, message, no_sleep):
        smtp_class.return_value.sendmail.side_effect = smtplib.SMTPDataError(451, b"try later")

        result = self._provider().send(message)

        assert result.status == SendStatus.FAILED
        assert smtp_class.return_value.sendmail.call_count == 3
        assert "after 3 attempts" in result.error_reason

    def test_permanent_failure_is_not_retried(self, smtp_class, message, no_sleep):
        smtp_class.return_value.sendmail.side_effect = smtplib.SMTPDataError(554, b"rejected")

        result = self._provider().send(message)

        assert result.status == SendStatus.FAILED
        assert smtp_class.return_value.sendmail.call_count == 1
        no_sleep.assert_not_called()

    def test_refused_recipient(self, smtp_class, message):
        smtp_class.return_value.sendmail.side_effect = smtplib.SMTPRecipientsRefused(
            {"user@example.com": (550, b"no such user")}
        )

        result = self._provider().send(message)

        assert result.status == SendStatus.FAILED
        assert "Recipient refused" in result.error_reason

    def test_validate_connection(self, smtp_class):
        assert self._provider().validate_connection() is True
        smtp_class.side_effect = OSError("unreachable")
        assert self._provider().validate_connection() is False


class TestMailerSendProvider:

    def _provider(self, *responses):
        provider = MailerSendProvider("orders@example.com", api_key="mlsn.key", from_name="Shiptrack")
        provider.session = Mock()
        provider.session.post.side_effect = list(responses)
        return provider

    def test_send_success(self, message):
        provider = self._provider(Mock(status_code=202, headers={"X-Message-Id": "ms-1"}))

        result = provider.send(message)

        assert result.ok
        assert result.message_id == "ms-1"
        payload = provider.session.post.call_args.kwargs["json"]
        assert payload["from"] == {"email": "orders@example.com", "name": "Shiptrack"}
        assert payload["to"] == [{"email": "user@example.com"}]
        assert payload["html"] == "<p>Hi</p>"
        assert payload["text"] == "Hi"
        assert payload["reply_to"] == {"email": "support@example.com"}

    def test_auth_header(self):
        provider = MailerSendProvider("orders@example.com", api_key="mlsn.key")
        assert provider.session.headers["Authorization"] == "Bearer mlsn.key"

    def test_rate_limit_is_retried(self, message, no_sleep):
        provider = self._provider(
            Mock(status_code=429, headers={}),
            Mock(status_code=202, headers={"X-Message-Id": "ms-2"}),
        )

        result = provider.send(message)

        assert result.ok
        assert no_sleep.call_count == 1

    def test_rate_limit_exhausted(self, message, no_sleep):
        provider = self._provider(*[Mock(status_code=429, headers={}) for _ in range(3)])

        result = provider.send(message)

        assert result.status == SendStatus.FAILED
        assert result.error_reason.startswith("Rate limited")

    def test_bad_token(self, message):
        provider = self._provider(Mock(status_code=401, headers={}))

        result = provider.send(message)

        assert result.status == SendStatus.FAILED
        assert "API token" in result.error_reason

    def test_validation_error_is_not_retried(self, message, no_sleep):
        provider = self._provider(Mock(status_code=422, headers={}, text='{"message": "bad"}'))

        result = provider.send(message)

        assert result.status == SendStatus.FAILED
        assert "422" in result.error_reason
        no_sleep.assert_not_called()

    def test_network_errors(self, message, no_sleep):
        provider = self._provider(*[requests.exceptions.ConnectionError("down") for _ in range(3)])

        result = provider.send(message)

        assert result.status == SendStatus.FAILED
        assert provider.session.post.call_count == 3


class TestSendGridProvider:

    def _provider(self):
        provider = SendGridProvider("orders@example.com", api_key="SG.key", from_name="Shiptrack")
        provider.client = Mock()
        return provider

    def test_send_success(self, message):
        provider = self._provider()
        provider.client.send.return_value = Mock(status_code=202, headers={"X-Message-Id": "sg-1"})

        result = provider.send(message)

        assert result.ok
        assert result.message_id == "sg-1"
        mail = provider.client.send.call_args.args[0].get()
        assert mail["from"]["email"] == "orders@example.com"
        assert mail["reply_to"]["email"] == "support@example.com"
        assert [c["type"] for c in mail["content"]] == ["text/plain", "text/html"]
        assert mail["custom_args"] == {"tracking_id": "TRANS1"}

    def test_unauthorized(self, message):
        provider = self._provider()
        provider.client.send.side_effect = HTTPError(401, "Unauthorized", b"{}", {})

        result = provider.send(message)

        assert result.status == SendStatus.FAILED
        assert "API key" in result.error_reason

    def test_server_error_is_retried(self, message, no_sleep):
        provider = self._provider()
        provider.client.send.side_effect = [
            HTTPError(503, "Unavailable", b"{}", {}),
            Mock(status_code=202, headers={}),
        ]

        result = provider.send(message)

        assert result.ok
        assert provider.client.send.call_count == 2


class TestEtherealProvider:

    ACCOUNT = {
        "status": "success",
        "user": "jane.doe@ethereal.email",
        "pass": "secret",
        "smtp": {"host": "smtp.ethereal.email", "port": 587, "secure": False},
        "web": "https://ethereal.email",
    }

    def test_creates_account_then_sends_over_smtp(self, message):
        account_response = MagicMock()
        account_response.json.return_value = self.ACCOUNT
        smtp_result = SendResult(recipient="user@example.com", status=SendStatus.SUCCESS, provider="smtp")

        with patch("shipmail.providers.ethereal.requests.post", return_value=account_response) as post, \
                patch.object(SMTPProvider, "send", return_value=smtp_result) as smtp_send:
            provider = EtherealProvider("no-reply@example.com", requestor="shiptrack")
            first = provider.send(message)
            provider.send(message)

        assert first.ok
        assert first.provider == "ethereal"
        assert post.call_count == 1
        assert post.call_args.kwargs["json"]["requestor"] == "shiptrack"
        assert smtp_send.call_count == 2
        assert provider.username == "jane.doe@ethereal.email"
        assert provider._smtp.host == "smtp.ethereal.email"

    def test_account_creation_failure(self, message):
        with patch(
            "shipmail.providers.ethereal.requests.post",
            side_effect=requests.exceptions.ConnectionError("offline"),
        ):
            result = EtherealProvider("no-reply@example.com").send(message)

        assert result.status == SendStatus.FAILED
        assert result.provider == "ethereal"
        assert "Could not create Ethereal account" in result.error_reason

    def test_existing_credentials_skip_account_creation(self, message):
        smtp_result = SendResult(recipient="user@example.com", status=SendStatus.SUCCESS, provider="smtp")

        with patch("shipmail.providers.ethereal.requests.post") as post, \
                patch.object(SMTPProvider, "send", return_value=smtp_result):
            provider = EtherealProvider("no-reply@example.com", username="u", password="p")
            assert provider.send(message).ok

        post.assert_not_called()
