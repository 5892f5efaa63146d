# tests/v1/test_documents.py
"""Tests for document issuance, transfer, retrieval and verification endpoints."""

from __future__ import annotations

import base64

from eth_account import Account
from fastapi import status

from docuchain.core.settings import settings
from docuchain.services.errors import ContentStoreError, EmailDeliveryError, LedgerError
from docuchain.services.tokens import TokenKind


def _sent_code(email_service) -> str:
    text = email_service.send.call_args.kwargs["text"]
    return text.split(": ", 1)[1][:6]


def _url(document, suffix: str = "") -> str:
    return f"/api/v1/documents/{document.doc_id}{suffix}"


class TestGetDocument:
    def test_owner_receives_content(self, client, auth_headers, document, identity, ledger, content_store) -> None:
        response = client.get(_url(document), headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["document"]["doc_id"] == document.doc_id
        assert body["document"]["recipient"] == identity.address
        assert base64.b64decode(body["content_base64"]) == b"%PDF-1.7 test document"
        ledger.can_access_document.assert_awaited_once_with(document.doc_id, identity.address)
        content_store.fetch.assert_awaited_once_with(document.ipfs_hash)

    def test_requires_token(self, client, document, ledger) -> None:
        response = client.get(_url(document))
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        ledger.can_access_document.assert_not_called()

    def test_denied_by_ledger(self, client, auth_headers, document, ledger, content_store) -> None:
        ledger.can_access_document.return_value = False

        response = client.get(_url(document), headers=auth_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN
        content_store.fetch.assert_not_called()

    def test_ledger_unavailable(self, client, auth_headers, document, ledger) -> None:
        ledger.can_access_document.side_effect = LedgerError("rpc timeout")

        response = client.get(_url(document), headers=auth_headers)
        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE

    def test_allowed_but_no_local_record(self, client, auth_headers) -> None:
        response = client.get("/api/v1/documents/0xunknown", headers=auth_headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_content_store_failure(self, client, auth_headers, document, content_store) -> None:
        content_store.fetch.side_effect = ContentStoreError("gateway down")

        response = client.get(_url(document), headers=auth_headers)
        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE


class TestDocumentCode:
    def test_code_is_mailed_to_owner(self, client, document, email_service) -> None:
        response = client.post(_url(document, "/otc"))

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"sent": True}
        assert email_service.send.call_args.kwargs["to"] == "holder@example.com"

    def test_unknown_document(self, client) -> None:
        response = client.post("/api/v1/documents/0xunknown/otc")
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_owner_without_email(self, client, db_session, document, identity) -> None:
        identity.email = None
        db_session.commit()

        response = client.post(_url(document, "/otc"))
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_mail_failure(self, client, document, email_service) -> None:
        email_service.send.side_effect = EmailDeliveryError("smtp down")

        response = client.post(_url(document, "/otc"))
        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE


class TestVerifyDocument:
    def test_verified_discloses_owner(self, client, db_session, document, identity, email_service, content_store) -> None:
        identity.photo_cid = "bafyphoto"
        db_session.commit()
        content_store.fetch.return_value = b"\xff\xd8jpeg"

        client.post(_url(document, "/otc"))
        response = client.post(_url(document, "/verify"), json={"code": _sent_code(email_service)})

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["is_verified"] is True
        assert body["document"]["doc_id"] == document.doc_id
        owner = body["owner"]
        assert owner["address"] == identity.address
        assert owner["legal_name"] == "Test Holder"
        assert owner["national_uid"] == "UID-0001"
        assert owner["date_of_birth"] == "1990-01-01"
        assert base64.b64decode(owner["photo_base64"]) == b"\xff\xd8jpeg"
        assert owner["photo_type"] == "image/jpeg"

    def test_owner_without_photo(self, client, document, email_service, content_store) -> None:
        client.post(_url(document, "/otc"))
        response = client.post(_url(document, "/verify"), json={"code": _sent_code(email_service)})

        owner = response.json()["owner"]
        assert owner["photo_base64"] is None
        assert owner["photo_type"] is None
        content_store.fetch.assert_not_called()

    def test_not_anchored_on_ledger(self, client, document, email_service, ledger) -> None:
        ledger.verify_document.return_value = False

        client.post(_url(document, "/otc"))
        response = client.post(_url(document, "/verify"), json={"code": _sent_code(email_service)})

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"is_verified": False, "document": None, "owner": None}

    def test_wrong_code(self, client, document, email_service, ledger) -> None:
        client.post(_url(document, "/otc"))
        code = _sent_code(email_service)
        wrong = "000000" if code != "000000" else "111111"

        response = client.post(_url(document, "/verify"), json={"code": wrong})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        ledger.verify_document.assert_not_called()

    def test_code_is_single_use(self, client, document, email_service) -> None:
        client.post(_url(document, "/otc"))
        code = _sent_code(email_service)

        assert client.post(_url(document, "/verify"), json={"code": code}).status_code == 200
        replay = client.post(_url(document, "/verify"), json={"code": code})
        assert replay.status_code == status.HTTP_400_BAD_REQUEST

    def test_malformed_code(self, client, document) -> None:
        response = client.post(_url(document, "/verify"), json={"code": "abc"})
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_ledger_unavailable(self, client, document, email_service, ledger) -> None:
        ledger.verify_document.side_effect = LedgerError("down")

        client.post(_url(document, "/otc"))
        response = client.post(_url(document, "/verify"), json={"code": _sent_code(email_service)})
        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE


class TestIssueDocument:
    def _payload(self, recipient: str, content: bytes = b"%PDF new degree") -> dict:
        return {
            "recipient": recipient,
            "doc_code": "DEG-2024-0100",
            "file_name": "degree.pdf",
            "file_type": "application/pdf",
            "content_base64": base64.b64encode(content).decode(),
        }

    def test_issuer_anchors_document(self, client, auth_headers, identity, ledger, content_store) -> None:
        recipient = Account.create().address

        response = client.post("/api/v1/documents", json=self._payload(recipient), headers=auth_headers)

        assert response.status_code == status.HTTP_201_CREATED, response.text
        body = response.json()
        assert body["doc_id"] == "0x" + "ef" * 32
        assert body["issuer"] == identity.address
        assert body["recipient"] == recipient.lower()
        assert body["ipfs_hash"] == "bafkreistoredcontent"
        assert body["file_size"] == len(b"%PDF new degree")
        ledger.issue_document.assert_awaited_once_with(
            identity.address, recipient.lower(), "bafkreistoredcontent"
        )

    def test_issued_document_is_retrievable(self, client, auth_headers) -> None:
        client.post("/api/v1/documents", json=self._payload(Account.create().address), headers=auth_headers)

        response = client.get(f"/api/v1/documents/{'0x' + 'ef' * 32}", headers=auth_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["document"]["doc_code"] == "DEG-2024-0100"

    def test_requires_token(self, client, ledger) -> None:
        response = client.post("/api/v1/documents", json=self._payload(Account.create().address))
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        ledger.issue_document.assert_not_called()

    def test_oversized_upload(self, client, auth_headers, content_store, monkeypatch) -> None:
        monkeypatch.setattr(settings, "max_upload_bytes", 4)
        response = client.post(
            "/api/v1/documents", json=self._payload(Account.create().address), headers=auth_headers
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        content_store.add.assert_not_called()

    def test_ledger_unavailable(self, client, auth_headers, ledger) -> None:
        ledger.issue_document.side_effect = LedgerError("rpc down")
        response = client.post(
            "/api/v1/documents", json=self._payload(Account.create().address), headers=auth_headers
        )
        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE


class TestTransferDocument:
    def test_owner_transfers(self, client, auth_headers, document, identity, ledger) -> None:
        new_owner = Account.create().address

        response = client.post(
            _url(document, "/transfer"), json={"new_owner": new_owner}, headers=auth_headers
        )

        assert response.status_code == status.HTTP_200_OK, response.text
        assert response.json()["recipient"] == new_owner.lower()
        assert document.recipient == new_owner.lower()
        ledger.transfer_ownership.assert_awaited_once_with(
            document.doc_id, identity.address, new_owner.lower()
        )

    def test_document_codes_follow_new_owner(
        self, client, auth_headers, document, make_identity, email_service
    ) -> None:
        buyer = make_identity(Account.create().address, email="buyer@example.com")
        client.post(_url(document, "/transfer"), json={"new_owner": buyer.address}, headers=auth_headers)

        response = client.post(_url(document, "/otc"))
        assert response.status_code == status.HTTP_200_OK
        assert email_service.send.call_args.kwargs["to"] == "buyer@example.com"

    def test_non_owner_forbidden(self, client, document, make_identity, token_service, ledger) -> None:
        stranger = make_identity(Account.create().address, email="s@example.com")
        token = token_service.issue(stranger.address, TokenKind.ACCESS)

        response = client.post(
            _url(document, "/transfer"),
            json={"new_owner": stranger.address},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN
        ledger.transfer_ownership.assert_not_called()

    def test_unknown_document(self, client, auth_headers) -> None:
        response = client.post(
            "/api/v1/documents/0xmissing/transfer",
            json={"new_owner": Account.create().address},
            headers=auth_headers,
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestLedgerStatus:
    def test_public_verdict(self, client, document, ledger) -> None:
        response = client.get(_url(document, "/verification"))
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"doc_id": document.doc_id, "is_verified": True}
        ledger.verify_document.assert_awaited_once_with(document.doc_id)

    def test_not_anchored(self, client, ledger) -> None:
        ledger.verify_document.return_value = False
        response = client.get("/api/v1/documents/0xunknown/verification")
        assert response.json() == {"doc_id": "0xunknown", "is_verified": False}

    def test_ledger_unavailable(self, client, ledger) -> None:
        ledger.verify_document.side_effect = LedgerError("rpc down")
        response = client.get("/api/v1/documents/0xabc/verification")
        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
