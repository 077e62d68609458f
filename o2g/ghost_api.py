"""Ghost Admin API client."""

import base64
import binascii
import hashlib
import hmac
import json
import mimetypes
import time
from typing import Any, Dict, Optional

import requests

from .exceptions import GhostAPIError
from .logger import logger


TOKEN_LIFETIME_SECONDS = 300
TOKEN_AUDIENCE = "/admin/"


def _base64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def generate_token(api_key: str, now: Optional[float] = None) -> str:
    """Generate a short-lived Ghost Admin API JWT.

    Args:
        api_key: Admin API key in ``id:secret`` form, secret hex encoded
        now: Unix time to issue the token at, defaults to current time

    Returns:
        Signed HS256 token

    Raises:
        GhostAPIError: If the key is malformed
    """
    key_id, _, secret = (api_key or "").partition(":")
    if not key_id or not secret:
        raise GhostAPIError("Invalid API key format. Expected format: id:secret")
    try:
        secret_bytes = binascii.unhexlify(secret)
    except (binascii.Error, ValueError):
        raise GhostAPIError("Invalid API key: secret must be hex encoded")

    issued_at = int(time.time() if now is None else now)
    header = {"alg": "HS256", "typ": "JWT", "kid": key_id}
    payload = {
        "iat": issued_at,
        "exp": issued_at + TOKEN_LIFETIME_SECONDS,
        "aud": TOKEN_AUDIENCE,
    }

    signing_input = ".".join(
        _base64url(json.dumps(part, separators=(",", ":")).encode("utf-8"))
        for part in (header, payload)
    )
    signature = hmac.new(secret_bytes, signing_input.encode("ascii"), hashlib.sha256)
    return f"{signing_input}.{_base64url(signature.digest())}"


class GhostAPI:
    """Minimal Ghost Admin API client: site info, image upload, post creation."""

    def __init__(
        self,
        ghost_url: str,
        api_key: str,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
    ):
        self.ghost_url = ghost_url.rstrip("/")
        self.api_key = api_key
        self.session = session or requests.Session()
        self.timeout = timeout

    @property
    def admin_url(self) -> str:
        return f"{self.ghost_url}/ghost/api/admin"

    def _auth_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Ghost {generate_token(self.api_key)}",
            "Accept": "application/json",
        }

    def _request(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        """Send an authenticated request and return the decoded JSON body.

        Raises:
            GhostAPIError: On network failure or a non-2xx response
        """
        url = f"{self.admin_url}{endpoint}"
        headers = self._auth_headers()
        headers.update(kwargs.pop("headers", {}))

        logger.debug(f"{method} {url}")
        try:
            response = self.session.request(
                method, url, headers=headers, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            raise GhostAPIError(f"Network error: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not 200 <= response.status_code < 300:
            raise GhostAPIError(
                self._error_message(data, response.status_code),
                status_code=response.status_code,
            )
        return data

    @staticmethod
    def _error_message(data: Any, status_code: int) -> str:
        if isinstance(data, dict):
            errors = data.get("errors") or []
            if errors and isinstance(errors[0], dict) and errors[0].get("message"):
                return errors[0]["message"]
        return f"HTTP {status_code}"

    def test_connection(self) -> str:
        """Check the credentials against the site endpoint.

        Returns:
            Site title
        """
        data = self._request("GET", "/site/")
        return (data.get("site") or {}).get("title") or "Unknown Site"

    def upload_image(self, filename: str, data: bytes) -> str:
        """Upload an image to the Ghost media library.

        Args:
            filename: File name sent to Ghost, also used as ``ref``
            data: Raw image bytes

        Returns:
            Public URL of the uploaded image
        """
        content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
        response = self._request(
            "POST",
            "/images/upload/",
            files={"file": (filename, data, content_type)},
            data={"purpose": "image", "ref": filename},
        )
        images = response.get("images") or []
        if not images or not images[0].get("url"):
            raise GhostAPIError(f"Upload of {filename} returned no image URL")
        return images[0]["url"]

    def create_post(self, post: Dict[str, Any]) -> Dict[str, Any]:
        """Create a post from HTML content.

        Args:
            post: Post fields (title, html, status, ...)

        Returns:
            The created post as returned by Ghost
        """
        response = self._request(
            "POST",
            "/posts/",
            params={"source": "html"},
            json={"posts": [post]},
        )
        posts = response.get("posts") or []
        if not posts:
            raise GhostAPIError("Ghost returned no post")
        return posts[0]
