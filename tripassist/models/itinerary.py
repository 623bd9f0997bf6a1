"""
Itinerary models - The result shape delivered by the workflow engine.
Wire format is camelCase; fields are snake_case with aliases.
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, Union


Cost = Union[str, int, float]


class Activity(BaseModel):
    """A single activity in a day."""
    model_config = ConfigDict(populate_by_name=True)

    time: str = Field(
        ...,
        description="Time of the activity, e.g. '9:00 AM' or 'Morning'"
    )
    name: Optional[str] = Field(
        None,
        description="Name of the activity"
    )
    description: str = Field(
        ...,
        description="Brief description of the activity"
    )
    type: str = Field(
        default="activity",
        description="Category tag of the activity"
    )
    icon: str = Field(
        default="default",
        description="Icon name representing the activity type"
    )
    location: Optional[str] = None
    cost: Optional[Cost] = None
    transport: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def fallback_type(cls, v):
        if not isinstance(v, str) or not v:
            return "activity"
        return v

    @field_validator("icon", mode="before")
    @classmethod
    def fallback_icon(cls, v):
        if not isinstance(v, str) or not v:
            return "default"
        return v


class DayTemplate(BaseModel):
    """Structured breakdown of a day's activities."""
    model_config = ConfigDict(populate_by_name=True)

    start_of_day: Optional[Activity] = Field(None, alias="startOfDay")
    breakfast: Optional[Activity] = None
    morning_activities: Optional[list[Activity]] = Field(None, alias="morningActivities")
    midday_activities: Optional[list[Activity]] = Field(None, alias="middayActivities")
    lunch: Optional[Activity] = None
    evening_activities: Optional[list[Activity]] = Field(None, alias="eveningActivities")
    dinner: Optional[Activity] = None
    nightlife_activities: Optional[list[Activity]] = Field(None, alias="nightlifeActivities")
    end_of_day: Optional[Activity] = Field(None, alias="endOfDay")


class ItineraryDay(BaseModel):
    """Plan for a single day."""
    model_config = ConfigDict(populate_by_name=True)

    day: int = Field(
        ...,
        description="Day number in the trip, starting from 1"
    )
    date: str = Field(
        ...,
        description="Date for this day's activities"
    )
    activities: Optional[list[Activity]] = Field(
        None,
        description="Flat list of all activities for the day"
    )
    template: Optional[DayTemplate] = Field(
        None,
        description="Structured breakdown of activities for the day"
    )


class Accommodation(BaseModel):
    """Where the travellers stay."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    type: str
    location: str
    cost_per_night: Cost = Field(..., alias="costPerNight")
    total_cost: Cost = Field(..., alias="totalCost")
    amenities: Optional[list[str]] = None


class CostBreakdown(BaseModel):
    """Estimated trip costs."""
    accommodation: Optional[Cost] = None
    transport: Optional[Cost] = None
    meals: Optional[Cost] = None
    activities: Optional[Cost] = None
    nightlife: Optional[Cost] = None
    total: Cost
    notes: Optional[str] = None


class Itinerary(BaseModel):
    """Complete travel itinerary."""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    destination: str = Field(..., description="Trip destination")
    start_date: str = Field(..., alias="startDate", description="Trip start date")
    end_date: str = Field(..., alias="endDate", description="Trip end date")
    days: list[ItineraryDay] = Field(
        ...,
        description="Day-wise schedules"
    )
    accommodation: Optional[Accommodation] = None
    cost_breakdown: Optional[CostBreakdown] = Field(None, alias="costBreakdown")

    def to_wire(self) -> dict:
        """Serialize to the camelCase JSON shape clients consume."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
