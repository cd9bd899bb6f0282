"""
HTTP registry client tests.

The requests session is mocked; these tests pin the mapping from transport
failures and status codes to typed errors, and the wire format sent.
"""

from unittest.mock import MagicMock

import pytest
import requests

from exceptions import (
    NotFoundError,
    RegistryRejectedError,
    RegistryUnavailableError,
    UnauthenticatedError,
)
from schemas.registry import RetireRequest, TransferRequest
from services.registry import AdapterClient, HttpRegistry

CLASS_PAYLOAD = {
    "id": "C1",
    "projectId": "P1",
    "vintage": "2022",
    "issued": 1000,
    "retired": 150,
    "remaining": 850,
    "status": "FINALIZED",
}


def _response(status=200, payload=None, text=None):
    response = MagicMock()
    response.status_code = status
    if payload is not None:
        response.json.return_value = payload
        response.content = b"{...}"
        response.text = str(payload)
    else:
        response.json.side_effect = ValueError("No JSON object could be decoded")
        response.content = (text or "").encode()
        response.text = text or ""
    return response


@pytest.fixture
def http_session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def client(http_session):
    return HttpRegistry("http://registry.test/", timeout=2.5, api_token="svc", session=http_session)


class TestReads:

    def test_get_class_parses_camel_case(self, client, http_session):
        http_session.request.return_value = _response(payload=CLASS_PAYLOAD)
        cls = client.get_class("C1")
        assert cls.project_id == "P1"
        assert cls.remaining == 850
        method, url = http_session.request.call_args.args
        assert (method, url) == ("GET", "http://registry.test/classes/C1")
        assert http_session.request.call_args.kwargs["timeout"] == 2.5
        assert http_session.request.call_args.kwargs["headers"]["Authorization"] == "Bearer svc"

    def test_envelopes_are_unwrapped(self, client, http_session):
        http_session.request.return_value = _response(payload={"classes": [CLASS_PAYLOAD]})
        assert [c.id for c in client.list_classes(available=True)] == ["C1"]
        assert http_session.request.call_args.kwargs["params"] == {"available": "true"}

        http_session.request.return_value = _response(payload={"data": CLASS_PAYLOAD})
        assert client.get_class("C1").id == "C1"

    def test_balances_carry_owner(self, client, http_session):
        http_session.request.return_value = _response(payload=[{"classId": "C1", "quantity": 50}])
        balances = client.get_balances("org_001")
        assert balances[0].owner_org_id == "org_001"
        assert http_session.request.call_args.kwargs["params"] == {"ownerId": "org_001"}


class TestErrorMapping:

    def test_404_is_not_found(self, client, http_session):
        http_session.request.return_value = _response(status=404, text="no such class")
        with pytest.raises(NotFoundError):
            client.get_class("C404")

    def test_401_is_unauthenticated(self, client, http_session):
        http_session.request.return_value = _response(status=401, text="bad token")
        with pytest.raises(UnauthenticatedError):
            client.list_projects()

    def test_5xx_is_unavailable(self, client, http_session):
        http_session.request.return_value = _response(status=503, text="down")
        with pytest.raises(RegistryUnavailableError) as exc_info:
            client.list_projects()
        assert exc_info.value.ambiguous is False

    def test_other_4xx_is_rejected(self, client, http_session):
        http_session.request.return_value = _response(status=409, text="insufficient supply")
        with pytest.raises(RegistryRejectedError) as exc_info:
            client.transfer(TransferRequest(to_org_id="org_001", class_id="C1", quantity=5))
        assert exc_info.value.status == 409
        assert exc_info.value.registry_detail == "insufficient supply"

    def test_malformed_json_is_unavailable(self, client, http_session):
        http_session.request.return_value = _response(status=200, text="<html>")
        with pytest.raises(RegistryUnavailableError):
            client.list_projects()

    def test_unexpected_payload_is_unavailable(self, client, http_session):
        http_session.request.return_value = _response(payload={"id": "C1"})
        with pytest.raises(RegistryUnavailableError):
            client.get_class("C1")

    def test_read_timeout_on_transfer_is_ambiguous(self, client, http_session):
        http_session.request.side_effect = requests.ReadTimeout("read timed out")
        with pytest.raises(RegistryUnavailableError) as exc_info:
            client.transfer(TransferRequest(to_org_id="org_001", class_id="C1", quantity=5))
        assert exc_info.value.ambiguous is True

    def test_connect_timeout_is_not_ambiguous(self, client, http_session):
        http_session.request.side_effect = requests.ConnectTimeout("connect timed out")
        with pytest.raises(RegistryUnavailableError) as exc_info:
            client.transfer(TransferRequest(to_org_id="org_001", class_id="C1", quantity=5))
        assert exc_info.value.ambiguous is False

    def test_timeout_on_read_is_not_ambiguous(self, client, http_session):
        http_session.request.side_effect = requests.ReadTimeout("read timed out")
        with pytest.raises(RegistryUnavailableError) as exc_info:
            client.get_class("C1")
        assert exc_info.value.ambiguous is False


class TestMutations:

    def test_transfer_sends_idempotency_key(self, client, http_session):
        http_session.request.return_value = _response(payload={"receiptId": "rcpt_9"})
        receipt = client.transfer(TransferRequest(
            to_org_id="org_001", class_id="C1", quantity=5, idempotency_key="abc",
        ))
        assert receipt.receipt_id == "rcpt_9"
        kwargs = http_session.request.call_args.kwargs
        assert kwargs["headers"]["Idempotency-Key"] == "abc"
        assert kwargs["json"] == {"toOrgId": "org_001", "classId": "C1", "quantity": 5, "idempotencyKey": "abc"}

    def test_transfer_without_receipt_id_parses(self, client, http_session):
        http_session.request.return_value = _response(payload={})
        receipt = client.transfer(TransferRequest(to_org_id="org_001", class_id="C1", quantity=5))
        assert receipt.receipt_id is None

    def test_find_transfer_404_is_none(self, client, http_session):
        http_session.request.return_value = _response(status=404, text="")
        assert client.find_transfer("abc") is None
        assert http_session.request.call_args.args[1] == "http://registry.test/credits/transfers/abc"

    def test_retire_sends_hashes_and_owner(self, client, http_session):
        http_session.request.return_value = _response(payload={"certificateId": "cert_1"})
        result = client.retire("org_001", RetireRequest(
            class_id="C1", quantity=10, purpose_hash="0xaa", beneficiary_hash="0xbb",
        ))
        assert result.certificate_id == "cert_1"
        assert http_session.request.call_args.kwargs["json"] == {
            "classId": "C1",
            "quantity": 10,
            "purposeHash": "0xaa",
            "beneficiaryHash": "0xbb",
            "ownerOrgId": "org_001",
        }


class TestAuth:

    def test_login(self, client, http_session):
        http_session.request.return_value = _response(payload={
            "token": "t",
            "user": {"id": "user_001", "orgId": "org_001", "email": "buyer@buyerco.local", "role": "BUYER"},
        })
        auth = client.login("buyer@buyerco.local", "Buyer@123")
        assert auth.user.org_id == "org_001"

    def test_resolve_token_401_is_none(self, client, http_session):
        http_session.request.return_value = _response(status=401, text="expired")
        assert client.resolve_token("t") is None

    def test_resolve_token_uses_caller_token(self, client, http_session):
        http_session.request.return_value = _response(payload={
            "user": {"id": "user_001", "orgId": "org_001", "email": "buyer@buyerco.local"},
        })
        assert client.resolve_token("caller").id == "user_001"
        assert http_session.request.call_args.kwargs["headers"]["Authorization"] == "Bearer caller"


class TestAdapterClient:

    def test_get_receipt(self, http_session):
        http_session.get.return_value = _response(payload={"txHash": "0xabc", "status": "CONFIRMED"})
        adapter = AdapterClient("http://adapter.test", session=http_session)
        assert adapter.get_receipt("rcpt_1")["txHash"] == "0xabc"
        assert http_session.get.call_args.args[0] == "http://adapter.test/v1/receipts/rcpt_1"

    def test_ping_tolerates_unknown_receipt(self, http_session):
        http_session.get.return_value = _response(status=404, text="")
        assert AdapterClient("http://adapter.test", session=http_session).ping() is True

    def test_ping_unreachable(self, http_session):
        http_session.get.side_effect = requests.ConnectionError("refused")
        with pytest.raises(RegistryUnavailableError):
            AdapterClient("http://adapter.test", session=http_session).ping()
