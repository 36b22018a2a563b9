import os
import unittest
from unittest.mock import MagicMock, patch

from nftraffle.blockchain.api import ChainClient
from nftraffle.blockchain.utils import get_jwt_token


class DummyResponse:
    def __init__(self, json_data=None, content: bytes = b""):
        self._json = json_data
        if json_data is not None and not content:
            import json as _json

            content = _json.dumps(json_data).encode()
        self.content = content

    def json(self):
        return self._json

    def raise_for_status(self):
        pass


class DummySession:
    def __init__(self, response: DummyResponse):
        self.response = response
        self.calls = []

    def request(self, method, url, headers=None, params=None, json=None, timeout=None):
        self.calls.append(
            {
                "method": method,
                "url": url,
                "headers": headers,
                "params": params,
                "json": json,
                "timeout": timeout,
            }
        )
        return self.response


class TestChainClient(unittest.TestCase):
    @patch("nftraffle.blockchain.api.open_session")
    @patch("nftraffle.blockchain.api.load_dotenv")
    def test_requires_fqdn(self, mock_load_dotenv, mock_open_session):
        # Ensure environment variable is not set and no network call is made
        with patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(ValueError):
                ChainClient()
        mock_open_session.assert_not_called()

    @patch("nftraffle.blockchain.api.get_jwt_token", return_value="jwt-token")
    @patch("nftraffle.blockchain.api.open_session")
    def test_init_sets_base_url_and_tokens(self, mock_open_session, mock_get_jwt):
        session = DummySession(DummyResponse(json_data={}))
        mock_open_session.return_value = (session, "csrf-token")
        client = ChainClient(base_fqdn="wallet.example.com", timeout=10)
        self.assertEqual(client.base_url, "https://wallet.example.com")
        self.assertEqual(client.csrf, "csrf-token")
        self.assertEqual(client.jwt, "jwt-token")
        mock_open_session.assert_called_once_with(timeout=10)
        mock_get_jwt.assert_called_once_with(session, timeout=10)

    @patch("nftraffle.blockchain.api.get_jwt_token", return_value="jwt")
    @patch("nftraffle.blockchain.api.open_session")
    def test_transfer_nft_posts_prize_reference(self, mock_open_session, mock_get_jwt):
        session = DummySession(DummyResponse(json_data={"transaction_id": "abc"}))
        mock_open_session.return_value = (session, "csrf")
        client = ChainClient(base_fqdn="host")

        result = client.transfer_nft("0xNFT", 4, "winner@host")
        self.assertEqual(result, {"transaction_id": "abc"})
        call = session.calls[0]
        self.assertEqual(call["method"], "POST")
        self.assertEqual(call["url"], "https://host/api/v1/nft/transfer")
        self.assertEqual(
            call["json"],
            {"asset_id": "0xNFT", "token_id": 4, "recipient_paymail": "winner@host"},
        )
        self.assertEqual(call["headers"]["Authorization"], "Bearer jwt")
        self.assertEqual(call["headers"]["X-CSRFTOKEN"], "csrf")

    @patch("nftraffle.blockchain.api.get_jwt_token", return_value="jwt")
    @patch("nftraffle.blockchain.api.open_session")
    def test_send_payment_and_empty_body(self, mock_open_session, mock_get_jwt):
        session = DummySession(DummyResponse(content=b""))
        mock_open_session.return_value = (session, "csrf")
        client = ChainClient(base_fqdn="host")

        self.assertIsNone(client.send_payment("owner@host", 300))
        call = session.calls[0]
        self.assertEqual(call["url"], "https://host/api/v1/wallet/send")
        self.assertEqual(call["json"], {"recipient_paymail": "owner@host", "amount": 300})

    @patch("nftraffle.blockchain.api.get_jwt_token", return_value="jwt")
    @patch("nftraffle.blockchain.api.open_session")
    def test_balance_uses_auth_headers(self, mock_open_session, mock_get_jwt):
        session = DummySession(DummyResponse(json_data={"balance": 42}))
        mock_open_session.return_value = (session, "csrf")
        client = ChainClient(base_fqdn="host")

        self.assertEqual(client.balance, {"balance": 42})
        self.assertEqual(session.calls[0]["method"], "GET")
        self.assertNotIn("X-CSRFTOKEN", session.calls[0]["headers"])

    @patch("nftraffle.blockchain.api.get_jwt_token")
    @patch("nftraffle.blockchain.api.open_session")
    def test_init_reports_session_error(self, mock_open_session, mock_get_jwt):
        mock_open_session.side_effect = RuntimeError("network unreachable")
        with self.assertRaises(RuntimeError) as ctx:
            ChainClient(base_fqdn="api.example.com")
        self.assertIn("network unreachable", str(ctx.exception))
        mock_get_jwt.assert_not_called()


class TestGetJwtToken(unittest.TestCase):
    def test_requires_credentials(self):
        with patch.dict(os.environ, {"BLOCKCHAIN_BASE_FQDN": "host"}, clear=True):
            with self.assertRaises(RuntimeError):
                get_jwt_token(MagicMock())

    def test_posts_credentials_and_returns_access(self):
        session = MagicMock()
        session.post.return_value.json.return_value = {"access": "token-123"}
        env = {
            "BLOCKCHAIN_BASE_FQDN": "host",
            "BLOCKCHAIN_ADMIN_USERNAME": "operator",
            "BLOCKCHAIN_ADMIN_PASSWORD": "secret",
        }
        with patch.dict(os.environ, env, clear=True):
            self.assertEqual(get_jwt_token(session, timeout=5), "token-123")
        session.post.assert_called_once_with(
            "https://host/api/v1/auth/jwt-token",
            json={"username": "operator", "password": "secret"},
            timeout=5,
        )


if __name__ == "__main__":
    unittest.main()
