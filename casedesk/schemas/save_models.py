"""Request/response schemas for the two-phase save exchange."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DraftValidationResponse(BaseModel):
    """Answer to the validate step: either errors or an opaque save token."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    errors: list[str] = Field(default_factory=list)
    save_token: str | None = None

    @property
    def ok(self) -> bool:
        return not self.errors and bool(self.save_token)


class SaveDraftRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    save_token: str = Field(min_length=1)


class NextIdsResponse(BaseModel):
    ids: list[str] = Field(default_factory=list)
