#!/usr/bin/env python3
"""
Tests for the Google OAuth login/logout routes and the session credential they set.
"""
import unittest
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs, urlparse

from fastapi.testclient import TestClient

from webapp.backend.app import create_app
from webapp.backend.core.config import ANALYTICS_SCOPE, Settings
from webapp.backend.core.report_transformer import ReportRow
from webapp.backend.routes import auth


class ChannelOnlySource:
    async def run_report(self, property_id, credential, query):
        self.credential = credential
        if query.dimensions == ["sessionDefaultChannelGroup"]:
            return [ReportRow.from_values(["Direct"], ["3"], ["sessionDefaultChannelGroup"], ["sessions"])]
        return []


def oauth_settings(**overrides):
    values = dict(
        google_client_id="client-id.apps.googleusercontent.com",
        google_client_secret="client-secret",
        oauth_redirect_uri="http://testserver/auth/google/callback",
        session_secret="test-secret",
        ga4_property_id="123456",
    )
    values.update(overrides)
    return Settings(**values)


def fake_flow(token="ya29.session-token"):
    flow = MagicMock()
    flow.credentials.token = token
    flow.credentials.granted_scopes = [ANALYTICS_SCOPE]
    return flow


class TestGoogleLogin(unittest.TestCase):

    def setUp(self):
        self.source = ChannelOnlySource()
        self.client = TestClient(create_app(oauth_settings(), report_source=self.source))

    def start_login(self):
        response = self.client.get("/auth/google", follow_redirects=False)
        self.assertEqual(response.status_code, 302)
        return urlparse(response.headers["location"])

    def test_redirects_to_google_consent(self):
        location = self.start_login()
        params = parse_qs(location.query)
        self.assertEqual(location.netloc, "accounts.google.com")
        self.assertEqual(params["client_id"], ["client-id.apps.googleusercontent.com"])
        self.assertEqual(params["access_type"], ["offline"])
        self.assertEqual(params["prompt"], ["consent"])
        self.assertIn(ANALYTICS_SCOPE, params["scope"][0].split(" "))
        self.assertTrue(params["state"][0])

    def test_callback_stores_credential_in_session(self):
        state = parse_qs(self.start_login().query)["state"][0]

        with patch.object(auth, "build_flow", return_value=fake_flow()) as build_flow:
            response = self.client.get(f"/auth/google/callback?code=4/abc&state={state}", follow_redirects=False)

        self.assertEqual(response.status_code, 302)
        self.assertEqual(response.headers["location"], "/")
        build_flow.return_value.fetch_token.assert_called_once_with(code="4/abc")

        dashboard = self.client.get("/api/ga4")
        self.assertEqual(dashboard.status_code, 200)
        self.assertEqual(dashboard.json()["channelSessions"][0]["channel"], "Direct")
        self.assertEqual(self.source.credential.access_token, "ya29.session-token")

    def test_callback_with_wrong_state(self):
        self.start_login()
        with patch.object(auth, "build_flow", return_value=fake_flow()) as build_flow:
            response = self.client.get("/auth/google/callback?code=4/abc&state=forged", follow_redirects=False)
        self.assertEqual(response.headers["location"], "/")
        build_flow.return_value.fetch_token.assert_not_called()
        self.assertEqual(self.client.get("/api/ga4").status_code, 401)

    def test_callback_without_code(self):
        response = self.client.get("/auth/google/callback?error=access_denied", follow_redirects=False)
        self.assertEqual(response.status_code, 302)
        self.assertEqual(self.client.get("/api/ga4").status_code, 401)

    def test_failed_token_exchange(self):
        state = parse_qs(self.start_login().query)["state"][0]
        flow = fake_flow()
        flow.fetch_token.side_effect = ValueError("invalid_grant")
        with patch.object(auth, "build_flow", return_value=flow):
            response = self.client.get(f"/auth/google/callback?code=4/abc&state={state}", follow_redirects=False)
        self.assertEqual(response.headers["location"], "/")
        self.assertEqual(self.client.get("/api/ga4").status_code, 401)

    def test_logout_clears_session(self):
        state = parse_qs(self.start_login().query)["state"][0]
        with patch.object(auth, "build_flow", return_value=fake_flow()):
            self.client.get(f"/auth/google/callback?code=4/abc&state={state}", follow_redirects=False)
        self.assertEqual(self.client.get("/api/ga4").status_code, 200)

        response = self.client.get("/logout", follow_redirects=False)
        self.assertEqual(response.status_code, 302)
        self.assertEqual(self.client.get("/api/ga4").status_code, 401)


class TestOAuthNotConfigured(unittest.TestCase):

    def test_login_without_client_config(self):
        client = TestClient(create_app(oauth_settings(google_client_id="", google_client_secret="")))
        response = client.get("/auth/google", follow_redirects=False)
        self.assertEqual(response.status_code, 500)
        self.assertIn("GOOGLE_CLIENT_ID", response.json()["error"])


if __name__ == "__main__":
    unittest.main()
