"""User profile domain model."""

from typing import Literal, Optional

from pydantic import BaseModel, Field

BusinessStage = Literal["planning", "new", "existing", "expansion"]


class Location(BaseModel):
    """Where the business operates."""
    state: Optional[str] = None
    district: Optional[str] = None
    is_rural: Optional[bool] = None

    def is_empty(self) -> bool:
        return self.state is None and self.district is None and self.is_rural is None


class UserProfile(BaseModel):
    """Partially known facts about the user, enriched across a session."""
    business_type: Optional[str] = None
    business_stage: Optional[BusinessStage] = None
    location: Optional[Location] = None
    category: Optional[str] = Field(default=None, description="Social category such as SC/ST, OBC or General")
    gender: Optional[str] = None
    interests: Optional[list[str]] = None
    previous_schemes: Optional[list[str]] = None

    def is_empty(self) -> bool:
        return not any(
            (
                self.business_type,
                self.business_stage,
                self.location is not None and not self.location.is_empty(),
                self.category,
                self.gender,
                self.interests,
                self.previous_schemes,
            )
        )
