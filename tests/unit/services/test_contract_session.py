from __future__ import annotations

import copy

from casedesk.core.enums import EditorState
from casedesk.core.exceptions import TransportError
from casedesk.schemas.save_models import DraftValidationResponse
from casedesk.services.contract_session import MISSING_TOKEN_MESSAGE, NOT_FOUND_MESSAGE, ContractSession


class FakeApi:
    def __init__(self, documents=None, validation=None, commit=None):
        self.documents = documents or {}
        self.validation = validation or DraftValidationResponse(save_token="tok-1")
        self.commit = commit
        self.calls = []
        self.payloads = []

    def get(self, contract_id):
        self.calls.append(("get", contract_id))
        document = self.documents.get(contract_id)
        if isinstance(document, Exception):
            raise document
        return copy.deepcopy(document)

    def next_ids(self, count):
        self.calls.append(("next_ids", count))
        return [f"srv-{index}" for index in range(count)]

    def validate_draft(self, payload):
        self.calls.append(("validate_draft", None))
        self.payloads.append(payload)
        return self.validation

    def save_draft(self, save_token):
        self.calls.append(("save_draft", save_token))
        if isinstance(self.commit, Exception):
            raise self.commit
        return copy.deepcopy(self.commit)


def _call_names(api):
    return [name for name, _ in api.calls]


def test_new_contract_save_flow(contract_document):
    saved = copy.deepcopy(contract_document)
    saved["id"] = "c-200"
    api = FakeApi(commit=saved)
    session = ContractSession(api)

    assert session.open("new", location_id="loc-1") is True
    assert session.editor.contract_id == "new"
    assert session.items.add_custom("Urn", unit_price=100, quantity=2, tax_rate=8) is not None
    assert session.items.grand_total == 216
    assert session.editor.get_value("sale.items.0.salesTax.0.taxAmount") == 16.0
    assert session.dirty is True

    assert session.save() is True

    assert _call_names(api) == ["next_ids", "validate_draft", "save_draft"]
    contract = api.payloads[0]["contract"]
    assert contract["id"] is None
    assert contract["sales"][0]["items"][0]["description"] == "Urn"
    assert session.editor.contract_id == "c-200"
    assert session.editor.state is EditorState.IDLE
    assert session.dirty is False
    assert [item["description"] for item in session.items.items] == ["Casket"]


def test_invalid_draft_is_not_sent():
    api = FakeApi()
    session = ContractSession(api)
    session.open("new", location_id="")

    assert session.save() is False
    assert api.calls == []
    assert "locationId" in session.editor.touched
    assert session.editor.state is EditorState.IDLE
    assert session.validation_message() == "Please fix 1 issue in: General."


def test_backend_validation_errors_skip_commit(contract_document):
    api = FakeApi(
        documents={"c-100": contract_document},
        validation=DraftValidationResponse(errors=["Sale date is closed", "Location inactive"]),
    )
    session = ContractSession(api)
    session.open("c-100")
    session.field_patch("contractNumber", "C-101")

    assert session.save() is False
    assert "save_draft" not in _call_names(api)
    assert session.editor.state is EditorState.SAVE_ERROR
    assert session.server_errors == ["Sale date is closed", "Location inactive"]
    assert session.last_error == "Sale date is closed; Location inactive"
    assert session.editor.get_value("contractNumber") == "C-101"


def test_missing_token_fails_save(contract_document):
    api = FakeApi(documents={"c-100": contract_document}, validation=DraftValidationResponse())
    session = ContractSession(api)
    session.open("c-100")

    assert session.save() is False
    assert session.last_error == MISSING_TOKEN_MESSAGE


def test_commit_failure_is_reported_verbatim_and_retry_succeeds(contract_document):
    api = FakeApi(documents={"c-100": contract_document}, commit=TransportError("Commit rejected: stale token"))
    session = ContractSession(api)
    session.open("c-100")
    session.field_patch("contractNumber", "C-101")

    assert session.save() is False
    assert session.last_error == "Commit rejected: stale token"
    assert session.editor.state is EditorState.SAVE_ERROR
    assert session.dirty is True

    api.commit = dict(contract_document, contractNumber="C-101")
    assert session.save() is True
    assert session.last_error is None
    assert session.dirty is False
    assert _call_names(api).count("save_draft") == 2
    assert "next_ids" not in _call_names(api)


def test_open_reports_missing_and_failing_contracts():
    api = FakeApi(documents={"c-500": TransportError("Backend unavailable")})
    session = ContractSession(api)

    assert session.open("c-404") is False
    assert session.editor.state is EditorState.ERROR
    assert session.last_error == NOT_FOUND_MESSAGE

    assert session.open("c-500") is False
    assert session.last_error == "Backend unavailable"
    assert session.items.items == []


def test_open_syncs_handlers(contract_document):
    session = ContractSession(FakeApi(documents={"c-100": contract_document}))
    assert session.open("c-100") is True

    assert session.people.primary_buyer["id"] == "p-1"
    assert session.payments.total == 100
    assert session.items.subtotal == 250


def test_finalize_locks_handlers_until_back_to_draft(contract_document):
    session = ContractSession(FakeApi(documents={"c-100": contract_document}))
    session.open("c-100")

    assert session.finalize() is True
    assert session.editor.get_value("meta.status") == 2
    assert session.items.add_custom("Flowers", unit_price=50) is None
    assert session.payments.add_payment(10, "cash") is None
    assert session.execute() is False

    assert session.back_to_draft() is True
    assert session.items.add_custom("Flowers", unit_price=50) is not None
    assert session.items.item_count == 2


def test_reset_discards_handler_edits(contract_document):
    session = ContractSession(FakeApi(documents={"c-100": contract_document}))
    session.open("c-100")
    session.people.update_primary_buyer({"first": "Anne"})
    assert session.dirty is True

    assert session.reset() is True
    assert session.dirty is False
    assert session.people.primary_buyer["name"]["first"] == "Ann"


def test_unexpected_commit_fault_ends_in_save_error(contract_document):
    api = FakeApi(documents={"c-100": contract_document}, commit=ConnectionError("socket reset by peer"))
    session = ContractSession(api)
    session.open("c-100")
    session.field_patch("contractNumber", "C-101")

    assert session.save() is False
    assert session.editor.state is EditorState.SAVE_ERROR
    assert session.last_error == "socket reset by peer"
    assert session.editor.get_value("contractNumber") == "C-101"

    assert session.reset() is True
    assert session.editor.state is EditorState.IDLE


def test_unexpected_id_allocation_fault_ends_in_save_error(monkeypatch):
    api = FakeApi()
    session = ContractSession(api)
    session.open("new", location_id="loc-1")

    def _broken_next_ids(count):
        raise OSError("id service unreachable")

    monkeypatch.setattr(api, "next_ids", _broken_next_ids)

    assert session.save() is False
    assert session.editor.state is EditorState.SAVE_ERROR
    assert session.last_error == "id service unreachable"

    monkeypatch.undo()
    api.commit = {"id": "c-300"}
    assert session.save() is True
    assert session.editor.contract_id == "c-300"


def test_malformed_commit_document_fails_save(contract_document):
    api = FakeApi(documents={"c-100": contract_document}, commit={"id": "c-100", "sales": [None]})
    session = ContractSession(api)
    session.open("c-100")

    assert session.save() is False
    assert session.editor.state is EditorState.SAVE_ERROR
    assert session.last_error.startswith("Contract data is malformed")
    assert session.editor.contract_id == "c-100"


def test_financials_combine_items_and_payments(contract_document):
    session = ContractSession(FakeApi(documents={"c-100": contract_document}))
    session.open("c-100")

    financials = session.financials
    assert financials.subtotal == 250
    assert financials.tax_total == 20
    assert financials.discount_total == 0
    assert financials.grand_total == 270
    assert financials.amount_paid == 100
    assert financials.balance_due == 170

    session.payments.add_payment(170, "check")
    assert session.financials.balance_due == 0


def test_availability_follows_status_and_signature(contract_document):
    session = ContractSession(FakeApi(documents={"c-100": contract_document}))
    session.open("c-100")

    assert session.has_required_fields is True
    assert session.can_save_draft_or_final is True
    assert session.can_finalize is True
    assert session.can_execute is False
    assert session.can_void is False
    assert session.can_back_to_draft is False

    session.finalize()
    assert session.can_finalize is False
    assert session.can_void is True
    assert session.can_back_to_draft is True
    assert session.has_signature is False
    assert session.can_execute is False

    session.field_patch("meta.dateSigned", "2026-01-05")
    assert session.can_execute is True
    assert session.execute() is True
    assert session.can_save_draft_or_final is False
    assert session.can_back_to_draft is False
    assert session.can_void is True


def test_finalize_needs_primary_buyer_and_beneficiary():
    session = ContractSession(FakeApi())
    session.open("new", location_id="loc-1")
    session.people.update_primary_buyer({"first": "Ann", "last": "Buyer"})

    assert session.has_required_fields is False
    assert session.can_finalize is False
    assert session.finalize() is False
    assert session.editor.get_value("meta.status") == 0
