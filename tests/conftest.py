from __future__ import annotations

import copy

import pytest

from casedesk.core.config import get_config

_CONTRACT_DOCUMENT = {
    "id": "c-100",
    "contractNumber": "C-100",
    "locationId": "loc-1",
    "needType": 1,
    "prePrintedContractNumber": "PP-7",
    "dateSigned": None,
    "dateExecuted": None,
    "isCancelled": False,
    "dateCreated": "2026-01-05T10:00:00Z",
    "dateLastModified": "2026-01-06T10:00:00Z",
    "subtotal": 250,
    "taxTotal": 20,
    "discountTotal": 0,
    "grandTotal": 270,
    "amountPaid": 100,
    "balanceDue": 170,
    "people": [
        {
            "id": "p-1",
            "roles": 1,
            "name": {"id": "n-1", "first": "Ann", "last": "Buyer", "deceased": False},
        },
        {
            "id": "p-2",
            "roles": 4,
            "name": {
                "id": "n-2",
                "first": "Bob",
                "last": "Smith",
                "deceased": True,
                "birthDate": "1940-02-01",
                "deathDate": "2025-12-01",
            },
        },
    ],
    "sales": [
        {
            "id": "s-1",
            "saleDate": "2026-01-05T00:00:00Z",
            "saleType": 0,
            "saleStatus": 0,
            "subtotal": 250,
            "taxTotal": 20,
            "discountTotal": 0,
            "grandTotal": 270,
            "items": [
                {
                    "id": "i-1",
                    "itemId": "cat-1",
                    "description": "Casket",
                    "quantity": 1,
                    "unitPrice": 250,
                    "salesTaxEnabled": True,
                    "isCancelled": False,
                    "ordinal": 0,
                    "salesTax": [{"id": "t-1", "taxRate": 8, "taxAmount": 20}],
                    "discounts": [],
                }
            ],
        },
        {"id": "s-2", "saleType": 1, "saleStatus": 0, "items": []},
    ],
    "payments": [{"id": "pay-1", "date": "2026-01-05", "method": "cash", "amount": 100}],
}


def build_contract_document(**overrides):
    document = copy.deepcopy(_CONTRACT_DOCUMENT)
    document.update(overrides)
    return document


@pytest.fixture
def contract_document():
    return build_contract_document()


@pytest.fixture
def finalized_document():
    document = build_contract_document()
    document["sales"][0]["saleStatus"] = 2
    return document


@pytest.fixture(autouse=True)
def fresh_config():
    get_config.cache_clear()
    yield
    get_config.cache_clear()
