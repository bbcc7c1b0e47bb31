"""Value objects shared by the commerce workflows."""

from __future__ import annotations

from pydantic import BaseModel


class Address(BaseModel):
    """Shipping or billing address."""

    first_name: str = ""
    last_name: str = ""
    address_line1: str = ""
    address_line2: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""
    phone: str = ""
