import os
from urllib.parse import urljoin
from dotenv import load_dotenv
from .utils import open_session, get_jwt_token
from typing import Any, Optional, Mapping


class ChainClient:
    """Thin client for the wallet service that holds the raffle's funds and prizes."""

    def __init__(self, base_fqdn: Optional[str] = None, timeout: int = 45):
        load_dotenv()
        fqdn = base_fqdn or os.getenv("BLOCKCHAIN_BASE_FQDN")
        if not fqdn:
            raise ValueError("Environment variable 'BLOCKCHAIN_BASE_FQDN' is not set")

        self.base_url = f"https://{fqdn}".rstrip("/")
        session_info = open_session(timeout=timeout)
        if not session_info or len(session_info) != 2:
            raise ValueError("open_session() must return (session, csrf_token)")
        self.session, self.csrf = session_info
        self.jwt = get_jwt_token(self.session, timeout=timeout)
        self.timeout = timeout

    # -------- headers --------
    @property
    def public_headers(self) -> Mapping[str, str]:
        return {"Accept": "application/json"}

    @property
    def auth_headers(self) -> Mapping[str, str]:
        return {"Accept": "application/json", "Authorization": f"Bearer {self.jwt}"}

    @property
    def auth_csrf_headers(self) -> Mapping[str, str]:
        return {**self.auth_headers, "X-CSRFTOKEN": self.csrf}

    # -------- core request --------
    def _request(
        self,
        method: str,
        path: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
    ) -> Any:
        url = urljoin(self.base_url + "/", path.lstrip("/"))
        r = self.session.request(
            method=method.upper(),
            url=url,
            headers=headers or self.public_headers,
            params=params,
            json=json,
            timeout=self.timeout,
        )
        r.raise_for_status()
        return r.json() if r.content else None

    # -------- API callers --------
    @property
    def info(self) -> dict:
        return self._request("GET", "/api/v1/user/info", headers=self.auth_headers)

    @property
    def balance(self) -> dict:
        return self._request(
            "GET",
            "/api/v1/user/wallet/balance",
            headers=self.auth_headers,
        )

    def transfer_nft(
        self, asset_id: str, token_id: int, recipient_paymail: str
    ) -> dict:
        """Move the NFT ``asset_id#token_id`` from the operator wallet to a recipient.

        Returns the service response; a successful transfer carries
        ``transaction_id``.
        """
        return self._request(
            "POST",
            "/api/v1/nft/transfer",
            json={
                "asset_id": asset_id,
                "token_id": token_id,
                "recipient_paymail": recipient_paymail,
            },
            headers=self.auth_csrf_headers,
        )

    def send_payment(self, recipient_paymail: str, amount: int) -> dict:
        """Send ``amount`` from the operator wallet to ``recipient_paymail``."""
        return self._request(
            "POST",
            "/api/v1/wallet/send",
            json={"recipient_paymail": recipient_paymail, "amount": amount},
            headers=self.auth_csrf_headers,
        )
