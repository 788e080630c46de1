from typing import Optional

from pydantic import BaseModel, ConfigDict


class HALLink(BaseModel):
    href: str                          # prefixed with the configured base URL
    templated: Optional[bool] = None   # True when placeholders were left unfilled

    model_config = ConfigDict(frozen=True)

    def as_dict(self) -> dict:
        return self.model_dump(exclude_none=True)


class RelationshipLinks(BaseModel):
    related: HALLink        # the related resource(s) endpoint
    relationship: Optional[HALLink] = None   # relationship endpoint, emitted as JSON:API "self"

    model_config = ConfigDict(frozen=True)
