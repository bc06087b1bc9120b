from datetime import datetime
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

PET_OWNER = "petOwner"
PET_CARE_PROVIDER = "petCareProvider"

UserType = Literal["petOwner", "petCareProvider"]
BookingStatus = Literal["Pending", "Accepted", "Rejected"]


class CamelModel(BaseModel):
    """Base for wire models: snake_case attributes, lowerCamelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProfileModel(CamelModel):
    # Profile fields are free-form strings; numbers sent by clients are kept as text.
    model_config = ConfigDict(coerce_numbers_to_str=True)


class CustomerProfile(ProfileModel):
    name: Optional[str] = None
    email: Optional[str] = None
    contact: Optional[str] = None
    location: Optional[str] = None
    password: Optional[str] = None
    species: Optional[str] = None
    breed: Optional[str] = None
    age: Optional[str] = None
    weight: Optional[str] = None
    medical_history: Optional[str] = None
    allergies: Optional[str] = None
    preferred_food: Optional[str] = None
    behavior: Optional[str] = None
    temperament: Optional[str] = None


class WeeklyAvailability(CamelModel):
    sunday: Optional[bool] = None
    monday: Optional[bool] = None
    tuesday: Optional[bool] = None
    wednesday: Optional[bool] = None
    thursday: Optional[bool] = None
    friday: Optional[bool] = None
    saturday: Optional[bool] = None


class ProviderProfile(ProfileModel):
    name: Optional[str] = None
    email: Optional[str] = None
    contact: Optional[str] = None
    location: Optional[str] = None
    password: Optional[str] = None
    experience: Optional[str] = None
    certifications: Optional[str] = None
    services_offered: Optional[list[str]] = None
    availability: Optional[WeeklyAvailability] = None
    charges: Optional[str] = None


class CustomerRecord(CustomerProfile):
    id: str = Field(alias="_id")


class ProviderRecord(ProviderProfile):
    id: str = Field(alias="_id")


AccountRecord = Union[CustomerRecord, ProviderRecord]


class SignupRequest(CamelModel):
    """``userType`` plus the flat profile fields of the matching account kind."""

    model_config = ConfigDict(extra="allow")

    user_type: Optional[str] = None

    def profile_fields(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})


class LoginRequest(CamelModel):
    user_type: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginResponse(BaseModel):
    message: str
    user: Dict[str, Any]


class MessageResponse(BaseModel):
    message: str


class ContactRequest(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    message: Optional[str] = None


class ContactMessage(ContactRequest):
    id: str = Field(alias="_id")
    created_at: datetime


class BookingRequest(CamelModel):
    provider_id: str
    customer_id: str
    service: str
    days: list[str] = Field(default_factory=list)


class Booking(CamelModel):
    id: str = Field(alias="_id")
    provider_id: str
    customer_id: str
    service: str
    days: list[str] = Field(default_factory=list)
    status: BookingStatus = "Pending"
    created_at: datetime


class BookingCreatedResponse(BaseModel):
    message: str
    booking: Booking


class CustomerRef(CamelModel):
    id: str = Field(alias="_id")
    name: Optional[str] = None


class ProviderBooking(CamelModel):
    """A provider's booking with the customer reference resolved to id and name."""

    id: str = Field(alias="_id")
    provider_id: str
    customer_id: Optional[CustomerRef] = None
    service: str
    days: list[str] = Field(default_factory=list)
    status: BookingStatus = "Pending"
    created_at: datetime


class BookingStatusUpdateRequest(CamelModel):
    status: BookingStatus


class SessionRecord(BaseModel):
    user_id: str
    user_type: UserType
    expires_at: datetime
