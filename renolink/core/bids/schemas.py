from decimal import Decimal

from pydantic import BaseModel, Field, field_validator


class BidItem(BaseModel):
    description: str
    cost: Decimal = Field(gt=0)

    @field_validator("description")
    @classmethod
    def _description_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Every bid item needs a description")
        return v


class BidDraft(BaseModel):
    itemized_costs: list[BidItem] = Field(min_length=1)
    estimated_timeline: str
    notes: str = ""

    @field_validator("estimated_timeline")
    @classmethod
    def _timeline_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Please provide an estimated timeline")
        return v
