import base64
import threading
import time
from typing import Any

import httpx

from payslip_mailer.logging.logger import Log
from payslip_mailer.transport.base import BaseTransport
from payslip_mailer.transport.exceptions import DeliveryError, TransportConfigurationError

TOKEN_URL = "https://login.microsoftonline.com/{tenant_id}/oauth2/v2.0/token"
GRAPH_SCOPE = "https://graph.microsoft.com/.default"
GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"

# Refresh this many seconds before the token actually expires.
_TOKEN_EXPIRY_MARGIN = 60


class GraphTransport(BaseTransport):
    """Delivers mail through the Microsoft Graph ``sendMail`` endpoint.

    Authenticates with the client-credentials flow. The access token is cached
    on the instance and refreshed shortly before it expires.
    """

    def __init__(
        self,
        *,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        sender: str,
        timeout_seconds: int = 30,
        save_to_sent_items: bool = True,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._tenant_id = tenant_id
        self._client_id = client_id
        self._client_secret = client_secret
        self._sender = sender
        self._save_to_sent_items = save_to_sent_items
        self._http = http_client or httpx.Client(timeout=timeout_seconds)
        self._token: str | None = None
        self._token_expires_at = 0.0
        self._token_lock = threading.Lock()

    def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        attachment_name: str,
        attachment_bytes: bytes,
    ) -> None:
        token = self._access_token()
        payload = self._build_payload(
            to, subject, html_body, attachment_name, attachment_bytes
        )
        try:
            response = self._http.post(
                f"{GRAPH_BASE_URL}/users/{self._sender}/sendMail",
                json=payload,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as exc:
            raise DeliveryError(f"Graph network error: {exc}") from exc
        if response.status_code >= 400:
            raise DeliveryError(
                f"Graph sendMail returned {response.status_code}: {response.text}"
            )
        Log.debug(f"Graph accepted '{attachment_name}' ({response.status_code})")

    def close(self) -> None:
        self._http.close()

    def _access_token(self) -> str:
        if not (self._tenant_id and self._client_id and self._client_secret):
            raise TransportConfigurationError(
                "Missing Azure AD credentials: set AZURE_TENANT_ID, "
                "AZURE_CLIENT_ID and AZURE_CLIENT_SECRET"
            )
        with self._token_lock:
            if self._token is not None and time.monotonic() < self._token_expires_at:
                return self._token
            self._token, expires_in = self._request_token()
            self._token_expires_at = (
                time.monotonic() + max(expires_in - _TOKEN_EXPIRY_MARGIN, 0)
            )
            return self._token

    def _request_token(self) -> tuple[str, int]:
        try:
            response = self._http.post(
                TOKEN_URL.format(tenant_id=self._tenant_id),
                data={
                    "grant_type": "client_credentials",
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "scope": GRAPH_SCOPE,
                },
            )
        except httpx.HTTPError as exc:
            raise DeliveryError(f"Graph token request failed: {exc}") from exc
        if response.status_code >= 400:
            raise DeliveryError(
                f"Graph token request returned {response.status_code}"
            )
        try:
            body = response.json()
            token = body.get("access_token")
            expires_in = int(body.get("expires_in", 3600))
        except (ValueError, TypeError, AttributeError) as exc:
            raise DeliveryError(f"Graph token response was malformed: {exc}") from exc
        if not token or not isinstance(token, str):
            raise DeliveryError("Graph token response contained no access_token")
        return token, expires_in

    def _build_payload(
        self,
        to: str,
        subject: str,
        html_body: str,
        attachment_name: str,
        attachment_bytes: bytes,
    ) -> dict[str, Any]:
        return {
            "message": {
                "subject": subject,
                "body": {"contentType": "HTML", "content": html_body},
                "toRecipients": [{"emailAddress": {"address": to}}],
                "attachments": [
                    {
                        "@odata.type": "#microsoft.graph.fileAttachment",
                        "name": attachment_name,
                        "contentType": "application/pdf",
                        "contentBytes": base64.b64encode(attachment_bytes).decode("ascii"),
                    }
                ],
            },
            "saveToSentItems": self._save_to_sent_items,
        }
