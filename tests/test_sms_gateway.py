import unittest
from datetime import timedelta
from urllib.parse import parse_qs

import httpx

from tests.base import AsyncDatabaseTestCase, dry_run_settings

from storefront_auth.services.otp import OtpStore
from storefront_auth.services.sms import (
    LocalSmsGateway,
    SmsSendError,
    TwilioVerifyGateway,
    build_sms_gateway,
)

PHONE = "+971501111111"


class LocalSmsGatewayTests(AsyncDatabaseTestCase):
    def setUp(self):
        super().setUp()
        self.store = OtpStore(clock=self.clock)

    async def test_debug_code_is_returned_only_when_exposed(self):
        gateway = LocalSmsGateway(
            self.store, timedelta(minutes=10), expose_code=True, code_factory=lambda: "004213"
        )
        outcome = await gateway.send(PHONE)
        self.assertTrue(outcome.dry_run)
        self.assertEqual(outcome.code, "004213")
        self.assertTrue(await gateway.check(PHONE, "004213"))

    async def test_code_is_hidden_without_debug_flag(self):
        gateway = LocalSmsGateway(
            self.store, timedelta(minutes=10), code_factory=lambda: "123456"
        )
        outcome = await gateway.send(PHONE)
        self.assertTrue(outcome.dry_run)
        self.assertIsNone(outcome.code)
        self.assertTrue(await gateway.check(PHONE, "123456"))

    async def test_check_fails_after_ttl(self):
        gateway = LocalSmsGateway(
            self.store, timedelta(minutes=1), code_factory=lambda: "123456"
        )
        await gateway.send(PHONE)
        self.clock.advance(minutes=2)
        self.assertFalse(await gateway.check(PHONE, "123456"))


def _twilio(handler) -> TwilioVerifyGateway:
    return TwilioVerifyGateway(
        "AC123", "token", "VA456", transport=httpx.MockTransport(handler)
    )


class TwilioVerifyGatewayTests(unittest.IsolatedAsyncioTestCase):
    async def test_send_posts_verification(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["form"] = parse_qs(request.content.decode())
            seen["auth"] = request.headers.get("Authorization", "")
            return httpx.Response(201, json={"status": "pending"})

        outcome = await _twilio(handler).send(PHONE)
        self.assertFalse(outcome.dry_run)
        self.assertIsNone(outcome.code)
        self.assertEqual(seen["url"], "https://verify.twilio.com/v2/Services/VA456/Verifications")
        self.assertEqual(seen["form"], {"To": [PHONE], "Channel": ["sms"]})
        self.assertTrue(seen["auth"].startswith("Basic "))

    async def test_send_failure_raises(self):
        gateway = _twilio(lambda request: httpx.Response(500, json={"message": "boom"}))
        with self.assertRaises(SmsSendError):
            await gateway.send(PHONE)

    async def test_network_failure_raises(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        with self.assertRaises(SmsSendError):
            await _twilio(handler).send(PHONE)

    async def test_check_approved(self):
        def handler(request):
            self.assertTrue(str(request.url).endswith("/Services/VA456/VerificationCheck"))
            self.assertEqual(parse_qs(request.content.decode())["Code"], ["123456"])
            return httpx.Response(200, json={"status": "approved"})

        self.assertTrue(await _twilio(handler).check(PHONE, "123456"))

    async def test_check_pending_or_missing_is_false(self):
        pending = _twilio(lambda request: httpx.Response(200, json={"status": "pending"}))
        missing = _twilio(lambda request: httpx.Response(404, json={"code": 20404}))
        self.assertFalse(await pending.check(PHONE, "000000"))
        self.assertFalse(await missing.check(PHONE, "000000"))

    async def test_check_server_error_raises(self):
        gateway = _twilio(lambda request: httpx.Response(503))
        with self.assertRaises(SmsSendError):
            await gateway.check(PHONE, "123456")

    async def test_check_auth_failure_raises(self):
        for status_code in (401, 403):
            with self.subTest(status_code=status_code):
                gateway = _twilio(
                    lambda request, status_code=status_code: httpx.Response(
                        status_code, json={"code": 20003}
                    )
                )
                with self.assertRaises(SmsSendError):
                    await gateway.check(PHONE, "123456")

    async def test_check_rejected_request_is_false(self):
        gateway = _twilio(lambda request: httpx.Response(400, json={"code": 60200}))
        self.assertFalse(await gateway.check(PHONE, "123456"))


class BuildSmsGatewayTests(unittest.TestCase):
    def test_provider_needs_all_credentials_and_no_dry_run(self):
        store = OtpStore()
        configured = dict(
            twilio_account_sid="AC123",
            twilio_auth_token="token",
            twilio_verify_service_sid="VA456",
        )
        self.assertIsInstance(
            build_sms_gateway(dry_run_settings(sms_dry_run=False, **configured), store),
            TwilioVerifyGateway,
        )
        self.assertIsInstance(
            build_sms_gateway(dry_run_settings(sms_dry_run=True, **configured), store),
            LocalSmsGateway,
        )
        partial = dict(configured, twilio_verify_service_sid="")
        self.assertIsInstance(
            build_sms_gateway(dry_run_settings(sms_dry_run=False, **partial), store),
            LocalSmsGateway,
        )

    def test_production_never_exposes_code(self):
        gateway = build_sms_gateway(
            dry_run_settings(app_env="production", otp_debug=True), OtpStore()
        )
        self.assertIsInstance(gateway, LocalSmsGateway)
        self.assertFalse(gateway._expose_code)
