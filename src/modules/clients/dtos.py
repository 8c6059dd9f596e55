"""Client DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``AddressDTO``: structured postal address (also used for delivery).
- ``CreateClientDTO``: input for client registration.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator


class AddressDTO(BaseModel):
    """Postal address.  Every part is optional free text."""

    model_config = ConfigDict(frozen=True)

    street: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""

    @classmethod
    def from_free_text(cls, text: str) -> AddressDTO:
        """Wrap a one-line address typed by staff into the street field."""
        return cls(street=text.strip())

    @property
    def is_empty(self) -> bool:
        return not any(
            (self.street, self.city, self.state, self.postal_code, self.country)
        )


class CreateClientDTO(BaseModel):
    """Immutable DTO for client registration requests."""

    model_config = ConfigDict(frozen=True)

    name: str
    email: EmailStr
    phone: str = ""
    company: str = ""
    address: AddressDTO = AddressDTO()
    user_ref: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_must_not_be_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Client name is required.")
        return v.strip()
