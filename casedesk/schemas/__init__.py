"""Pydantic schema package for contract documents and save exchanges."""

from casedesk.schemas.contracts import (
    ContractDocument,
    ContractPersonShape,
    PaymentShape,
    PersonName,
    SaleItemShape,
)
from casedesk.schemas.save_models import DraftValidationResponse, NextIdsResponse, SaveDraftRequest

__all__ = [
    "ContractDocument",
    "ContractPersonShape",
    "DraftValidationResponse",
    "NextIdsResponse",
    "PaymentShape",
    "PersonName",
    "SaleItemShape",
    "SaveDraftRequest",
]
