"""
Database Schemas

Document shapes for the StudyMate MongoDB collections:
- partners: free-form partner listings (no schema enforced)
- requests: study requests, each carrying a PartnerSnapshot
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, Optional

SNAPSHOT_FIELDS = ("name", "subject", "experienceLevel", "location", "studyMode", "rating")


class PartnerSnapshot(BaseModel):
    """
    Copy of a partner's listing taken when a request is created.
    Never refreshed if the partner changes later.
    """
    name: Optional[Any] = Field(None, description="Partner display name")
    subject: Optional[Any] = Field(None, description="Subject the partner studies")
    experienceLevel: Optional[Any] = Field(None, description="Self-reported experience level")
    location: Optional[Any] = Field(None, description="Where the partner studies")
    studyMode: Optional[Any] = Field(None, description="Online, in person, ...")
    rating: Optional[Any] = Field(None, description="Numeric rating")

    @classmethod
    def from_partner(cls, partner: Dict[str, Any]) -> "PartnerSnapshot":
        return cls(**{field: partner.get(field) for field in SNAPSHOT_FIELDS})


class StudyRequestCreate(BaseModel):
    """
    Body of POST /requests
    partnerId is kept verbatim on the stored request.
    """
    partnerId: Optional[str] = Field(None, description="Id of the partner being asked")
    requesterEmail: Optional[Any] = Field(None, description="Email of the requesting user")


class StudyRequest(BaseModel):
    """
    Requests collection schema
    Collection name: "requests"
    """
    partnerId: Optional[str] = Field(None, description="Referenced partner id (not enforced)")
    requesterEmail: Optional[Any] = Field(None, description="Email of the requesting user")
    partnerSnapshot: PartnerSnapshot
    status: str = Field("pending", description="Free-text request status")
