import os
import logging
from typing import Tuple

import requests
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Ensure environment variables from .env are loaded when this module is imported.
load_dotenv()


def _base_url() -> str:
    fqdn = os.environ.get("BLOCKCHAIN_BASE_FQDN")
    if not fqdn:
        raise RuntimeError("Environment variable 'BLOCKCHAIN_BASE_FQDN' is not set")
    return "https://" + fqdn


def open_session(timeout: int = 45) -> Tuple[requests.Session, str]:
    """Open a requests session to the wallet service and fetch CSRF.

    Returns
    -------
    tuple[requests.Session, str]
        The initialized session and CSRF token string.

    Raises
    ------
    RuntimeError
        If ``BLOCKCHAIN_BASE_FQDN`` is not set or the session cannot be
        established, including when the server returns no CSRF cookie. Any
        underlying exception is re-raised as a ``RuntimeError`` with context.
    """
    url = _base_url()

    session = requests.Session()
    try:
        response = session.get(url, timeout=timeout)
        response.raise_for_status()

        # Do not log cookie values; just count for diagnostics.
        logger.debug(f"Received {len(session.cookies)} cookies from server")
        csrf_token = response.cookies.get("csrftoken")
        if not csrf_token:
            raise RuntimeError("Server did not return a CSRF token")
        logger.debug("CSRF token acquired")
        return session, csrf_token

    except Exception as e:
        logger.critical(f"Error occurred while starting session: {e}")
        raise RuntimeError(f"Failed to establish session: {e}") from e


def get_jwt_token(session: requests.Session, timeout: int = 45) -> str:
    """Obtain a JWT access token for the raffle operator's wallet account.

    Raises
    ------
    RuntimeError
        If the base FQDN or the admin credentials are not configured.
    requests.HTTPError
        If the login request fails.
    KeyError
        If the response payload does not include an ``"access"`` field.
    """
    username = os.environ.get("BLOCKCHAIN_ADMIN_USERNAME")
    password = os.environ.get("BLOCKCHAIN_ADMIN_PASSWORD")
    if not username or not password:
        raise RuntimeError(
            "BLOCKCHAIN_ADMIN_USERNAME and BLOCKCHAIN_ADMIN_PASSWORD must be set"
        )
    # Never log raw credentials
    logger.debug("Attempting JWT login with configured admin username")

    url = _base_url() + "/api/v1/auth/jwt-token"
    response = session.post(
        url, json={"username": username, "password": password}, timeout=timeout
    )
    response.raise_for_status()

    # Avoid logging headers/body/response as they may contain sensitive data
    logger.debug("JWT token response received (content redacted)")
    return response.json()["access"]
