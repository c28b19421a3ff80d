import base64
import json

import httpx
import pytest

from payslip_mailer.transport.exceptions import DeliveryError, TransportConfigurationError
from payslip_mailer.transport.graph_adapter import GraphTransport


class _GraphStub:
    """Records requests and answers token and sendMail calls."""

    def __init__(
        self,
        send_status: int = 202,
        token_status: int = 200,
        token_response: httpx.Response | None = None,
    ) -> None:
        self.send_status = send_status
        self.token_status = token_status
        self.token_response = token_response
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "login.microsoftonline.com":
            if self.token_response is not None:
                return self.token_response
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"error": "invalid_client"})
            return httpx.Response(200, json={"access_token": "tok-1", "expires_in": 3600})
        return httpx.Response(self.send_status, text="" if self.send_status < 400 else "nope")

    @property
    def send_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == "graph.microsoft.com"]

    @property
    def token_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == "login.microsoftonline.com"]


def _make_transport(stub: _GraphStub, **overrides: str) -> GraphTransport:
    options = {
        "tenant_id": "tenant",
        "client_id": "client",
        "client_secret": "secret",
        "sender": "finance@example.com",
    }
    options.update(overrides)
    return GraphTransport(
        **options,
        http_client=httpx.Client(transport=httpx.MockTransport(stub)),
    )


def _send(transport: GraphTransport) -> None:
    transport.send("anna@example.com", "Payslip - 2026/01", "<p>Hi</p>", "p1.pdf", b"%PDF")


class TestGraphTransport:
    def test_posts_send_mail_for_sender(self) -> None:
        stub = _GraphStub()

        _send(_make_transport(stub))

        request = stub.send_requests[0]
        assert request.method == "POST"
        assert request.url.path == "/v1.0/users/finance@example.com/sendMail"
        assert request.headers["Authorization"] == "Bearer tok-1"

    def test_payload_carries_html_body_and_base64_attachment(self) -> None:
        stub = _GraphStub()

        _send(_make_transport(stub))

        payload = json.loads(stub.send_requests[0].content)
        message = payload["message"]
        assert message["subject"] == "Payslip - 2026/01"
        assert message["body"] == {"contentType": "HTML", "content": "<p>Hi</p>"}
        assert message["toRecipients"] == [{"emailAddress": {"address": "anna@example.com"}}]
        attachment = message["attachments"][0]
        assert attachment["name"] == "p1.pdf"
        assert attachment["contentType"] == "application/pdf"
        assert base64.b64decode(attachment["contentBytes"]) == b"%PDF"
        assert payload["saveToSentItems"] is True

    def test_requests_client_credentials_token(self) -> None:
        stub = _GraphStub()

        _send(_make_transport(stub))

        token_request = stub.token_requests[0]
        assert token_request.url.path == "/tenant/oauth2/v2.0/token"
        body = token_request.content.decode()
        assert "grant_type=client_credentials" in body
        assert "client_id=client" in body

    def test_token_is_reused_across_sends(self) -> None:
        stub = _GraphStub()
        transport = _make_transport(stub)

        _send(transport)
        _send(transport)

        assert len(stub.token_requests) == 1
        assert len(stub.send_requests) == 2

    def test_error_status_raises_delivery_error(self) -> None:
        stub = _GraphStub(send_status=403)

        with pytest.raises(DeliveryError, match="403"):
            _send(_make_transport(stub))

    def test_token_failure_raises_delivery_error(self) -> None:
        stub = _GraphStub(token_status=401)

        with pytest.raises(DeliveryError, match="token request returned 401"):
            _send(_make_transport(stub))
        assert stub.send_requests == []

    def test_missing_credentials_raise_configuration_error(self) -> None:
        stub = _GraphStub()

        with pytest.raises(TransportConfigurationError, match="AZURE_CLIENT_ID"):
            _send(_make_transport(stub, client_id=""))
        assert stub.requests == []

    def test_network_error_raises_delivery_error(self) -> None:
        def fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        transport = GraphTransport(
            tenant_id="t",
            client_id="c",
            client_secret="s",
            sender="finance@example.com",
            http_client=httpx.Client(transport=httpx.MockTransport(fail)),
        )

        with pytest.raises(DeliveryError, match="unreachable"):
            _send(transport)


class TestMalformedTokenResponse:
    @pytest.mark.parametrize(
        "token_response",
        [
            httpx.Response(200, text="<html>proxy login</html>"),
            httpx.Response(200, json={"access_token": "tok-1", "expires_in": "soon"}),
            httpx.Response(200, json=["tok-1"]),
            httpx.Response(200, json={"expires_in": 3600}),
        ],
        ids=["html-body", "bad-expiry", "list-body", "no-token"],
    )
    def test_raises_delivery_error(self, token_response: httpx.Response) -> None:
        stub = _GraphStub(token_response=token_response)

        with pytest.raises(DeliveryError, match="Graph token response"):
            _send(_make_transport(stub))
        assert stub.send_requests == []
