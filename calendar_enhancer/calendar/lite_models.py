"""Data models for location resolution - calendar_enhancer."""

from pydantic import BaseModel, ConfigDict, Field


class CampusRecord(BaseModel):
    """Static description of one campus building."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Display name of the building")
    address: str = Field(..., description="Street address shown to calendar apps")
    coordinates: str = Field(..., min_length=3, description="'lat,lon' pair, used verbatim in geo: URIs")
    geocode: str = Field(default="", description="Short Plus Code for the building")
    note: str = Field(default="", description="Optional note appended to event descriptions")


class ResolvedLocation(BaseModel):
    """A campus record annotated with the key it was matched under and the room token."""

    model_config = ConfigDict(frozen=True)

    key: str
    name: str
    address: str
    coordinates: str
    geocode: str = ""
    note: str = ""
    room: str = ""

    @property
    def is_online(self) -> bool:
        """Check if this is the synthetic online location."""
        return self.key == "Online"
