"""Unit tests for Client DTOs (Pydantic v2)."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from modules.clients.dtos import AddressDTO, CreateClientDTO

pytestmark = pytest.mark.unit


def test_address_defaults_are_empty():
    assert AddressDTO().is_empty


def test_free_text_goes_to_street():
    address = AddressDTO.from_free_text("  Unit 3, Al Quoz  ")
    assert address.street == "Unit 3, Al Quoz"
    assert not address.is_empty


def test_create_client_strips_name():
    dto = CreateClientDTO(name="  Acme  ", email="a@acme.example.com")
    assert dto.name == "Acme"
    assert dto.address == AddressDTO()


@pytest.mark.parametrize(
    "payload",
    [
        {"name": "", "email": "a@acme.example.com"},
        {"name": "Acme", "email": "not-an-email"},
    ],
)
def test_invalid_payloads(payload):
    with pytest.raises(ValidationError):
        CreateClientDTO(**payload)
