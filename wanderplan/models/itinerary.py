"""
Itinerary models - Structured output for generated travel plans.

Field names on the wire are camelCase (tripTitle, dailyPlans, specialEvent);
both the wire names and the Python names are accepted on input.
"""
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional


class _PlanModel(BaseModel):
    """Shared config: camelCase aliases, frozen once produced."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Activity(_PlanModel):
    """A single timed activity in a day plan."""
    time: str = Field(
        ...,
        description="Display time, e.g. '09:00 AM'. Never parsed."
    )
    location: str = Field(
        ...,
        description="Name of the place"
    )
    description: str = Field(
        ...,
        description="What to do there"
    )


class SpecialEvent(_PlanModel):
    """An evening event suggested for the day."""
    name: str = Field(..., description="Event name")
    location: str = Field(default="", description="Where the event takes place")
    details: str = Field(
        default="",
        description="Timing and why it's recommended for the travel date"
    )


class DailyPlan(_PlanModel):
    """Plan for a single day."""
    day: int = Field(
        ...,
        ge=1,
        description="Day number in the trip"
    )
    title: str = Field(
        ...,
        description="Theme or focus for the day"
    )
    activities: list[Activity] = Field(
        default_factory=list,
        description="Timed schedule for the day"
    )
    special_event: Optional[SpecialEvent] = Field(
        None,
        description="Optional evening event"
    )


class Itinerary(_PlanModel):
    """Complete multi-day travel plan."""
    trip_title: str = Field(
        ...,
        description="Headline for the whole trip"
    )
    daily_plans: list[DailyPlan] = Field(
        ...,
        description="Day-wise plans, ascending by day"
    )

    def get_day(self, day: int) -> Optional[DailyPlan]:
        """Find the plan for a day number. Days may not be contiguous."""
        return next((plan for plan in self.daily_plans if plan.day == day), None)

    def destination_name(self) -> str:
        """Best-effort destination name recovered from the trip title."""
        return (
            self.trip_title
            .replace("Your Awesome Trip to ", "")
            .replace("Trip to ", "")
        )

    def to_wire(self) -> dict:
        """Dump using the camelCase wire names, omitting absent events."""
        return self.model_dump(by_alias=True, exclude_none=True)
