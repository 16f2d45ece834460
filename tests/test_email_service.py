"""
ART Job Board - Email Service Tests

Provider dispatch tested against mocked SendGrid and Mailgun APIs.
"""

import json
import uuid

import httpx
import pytest
import respx

from jobboard.services.email_service import EmailPayload, EmailProvider, EmailService, build_estimate_sent_email


PROJECT_ID = uuid.uuid4()


@pytest.fixture
def payload() -> EmailPayload:
    return build_estimate_sent_email(
        project_number="26-03-001",
        project_name="12 Ocean St re-roof",
        client_name="Harbour Roofing",
        project_id=PROJECT_ID,
        snapshot={
            "price_each": 70.0,
            "total_price": 140.0,
            "loyalty_tier": "Elite",
            "qty": 2.0,
            "plan_type": "Standard",
            "currency": "AUD",
        },
    )


class TestTemplate:
    """Tests for the estimate-sent notification."""

    def test_subject_and_pricing(self, payload):
        assert payload.subject == "Estimate Completed - 26-03-001 12 Ocean St re-roof"
        assert "$140.00 AUD" in payload.html
        assert "Harbour Roofing" in payload.html
        assert payload.project_id == PROJECT_ID

    def test_template_without_snapshot(self):
        payload = build_estimate_sent_email("26-03-002", "Shed", "A & B <Roofing>")
        assert "A &amp; B &lt;Roofing&gt;" in payload.html
        assert "Price each" not in payload.html


class TestProviderSelection:
    """Tests for choosing a provider from configuration."""

    def test_explicit_provider(self):
        assert EmailService(provider="mock").provider == EmailProvider.MOCK

    def test_sendgrid_key_selects_sendgrid(self, monkeypatch):
        from jobboard.config import settings
        monkeypatch.setattr(settings, "email_provider", None)
        assert EmailService(sendgrid_api_key="SG.key").provider == EmailProvider.SENDGRID


@pytest.mark.asyncio
@respx.mock
async def test_sendgrid_delivery(payload):
    route = respx.post(EmailService.SENDGRID_URL).mock(return_value=httpx.Response(202))
    service = EmailService(provider=EmailProvider.SENDGRID, sendgrid_api_key="SG.test")

    result = await service.send("office@harbourroofing.com.au", payload)

    assert result.success is True
    assert result.provider == EmailProvider.SENDGRID
    request = route.calls.last.request
    assert request.headers["Authorization"] == "Bearer SG.test"
    body = json.loads(request.content)
    assert body["personalizations"][0]["to"] == [{"email": "office@harbourroofing.com.au"}]
    assert body["subject"] == payload.subject
    assert body["headers"]["X-ART-Project-Id"] == str(PROJECT_ID)


@pytest.mark.asyncio
@respx.mock
async def test_sendgrid_failure_is_reported(payload):
    respx.post(EmailService.SENDGRID_URL).mock(return_value=httpx.Response(500))
    service = EmailService(provider=EmailProvider.SENDGRID, sendgrid_api_key="SG.test")

    result = await service.send("office@harbourroofing.com.au", payload)

    assert result.success is False
    assert result.error


@pytest.mark.asyncio
@respx.mock
async def test_mailgun_delivery(payload):
    route = respx.post("https://api.mailgun.net/v3/mg.artestimating.com.au/messages").mock(
        return_value=httpx.Response(200, json={"id": "<1@mg>", "message": "Queued"})
    )
    service = EmailService(
        provider=EmailProvider.MAILGUN,
        mailgun_api_key="key-test",
        mailgun_domain="mg.artestimating.com.au",
    )

    result = await service.send(["a@example.com", "b@example.com"], payload)

    assert result.success is True
    assert result.recipients == ["a@example.com", "b@example.com"]
    assert route.called


@pytest.mark.asyncio
@respx.mock
async def test_network_error_is_reported(payload):
    respx.post(EmailService.SENDGRID_URL).mock(side_effect=httpx.ConnectError("refused"))
    service = EmailService(provider=EmailProvider.SENDGRID, sendgrid_api_key="SG.test")

    result = await service.send("office@harbourroofing.com.au", payload)

    assert result.success is False


@pytest.mark.asyncio
async def test_mock_provider_always_succeeds(payload):
    result = await EmailService(provider=EmailProvider.MOCK).send("office@harbourroofing.com.au", payload)
    assert result.success is True
    assert result.provider == EmailProvider.MOCK
