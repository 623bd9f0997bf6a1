"""
Travel preferences - The submission body forwarded to the workflow engine.
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional
from datetime import date


def _require_selection(values: list[str], message: str) -> list[str]:
    if not any(values):
        raise ValueError(message)
    return values


class TravelDates(BaseModel):
    """Trip date range."""
    model_config = ConfigDict(populate_by_name=True)

    start: date = Field(..., alias="from", description="Trip start date")
    end: date = Field(..., alias="to", description="Trip end date")

    @field_validator("start", "end", mode="before")
    @classmethod
    def strip_time_component(cls, v):
        # Browsers send full ISO timestamps; only the calendar date matters
        if isinstance(v, str) and "T" in v:
            return v.split("T", 1)[0]
        return v

    @model_validator(mode="after")
    def check_order(self) -> "TravelDates":
        if self.end < self.start:
            raise ValueError("End date must not be before the start date.")
        return self


class Budget(BaseModel):
    """Per-person budget."""
    model_config = ConfigDict(populate_by_name=True)

    currency: str = Field(..., min_length=1)
    amount: float = Field(..., ge=1)
    other_currency: Optional[str] = Field(None, alias="otherCurrency")

    @model_validator(mode="after")
    def check_other_currency(self) -> "Budget":
        if self.currency == "OTHER" and not self.other_currency:
            raise ValueError("Please specify the currency code.")
        return self


class TravelPreferences(BaseModel):
    """
    Preferences collected by the trip form.
    Sent to the engine as-is, plus the callback fields in async mode.
    """
    model_config = ConfigDict(populate_by_name=True)

    destination: str = Field(
        ..., min_length=3,
        description="Where the trip goes"
    )
    dates: TravelDates
    num_people: int = Field(
        ..., ge=1, alias="numPeople",
        description="Number of travellers"
    )
    age_groups: list[str] = Field(..., alias="ageGroups")
    interests: list[str]
    other_interests: Optional[str] = Field(None, alias="otherInterests")
    budget: Budget
    transport: list[str]
    other_transport: Optional[str] = Field(None, alias="otherTransport")
    food_preferences: Optional[list[str]] = Field(None, alias="foodPreferences")
    other_food_preferences: Optional[str] = Field(None, alias="otherFoodPreferences")

    @field_validator("age_groups")
    @classmethod
    def validate_age_groups(cls, v):
        return _require_selection(v, "You have to select at least one age group.")

    @field_validator("interests")
    @classmethod
    def validate_interests(cls, v):
        return _require_selection(v, "You have to select at least one area of interest.")

    @field_validator("transport")
    @classmethod
    def validate_transport(cls, v):
        return _require_selection(v, "You have to select at least one transport preference.")

    def to_engine_payload(self) -> dict:
        """JSON body for the engine, dates as ISO strings."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
