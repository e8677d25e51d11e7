from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import ConfigDict, ValidationError
from sqlmodel import Field, SQLModel

from chuka_market.models.enums.product_category import ProductCategory
from chuka_market.services.product.exceptions import ProductValidationError

REQUIRED_FIELDS = ("title", "description", "price", "category")


# Basic schema for listing data, shared by the table model and the forms
class ProductBase(SQLModel):
    title: str = Field(max_length=255)
    description: str = Field(max_length=5000)
    price: Decimal = Field(max_digits=10, decimal_places=2, ge=0)
    category: ProductCategory
    location: Optional[str] = Field(default=None, max_length=255)
    phone_number: Optional[str] = Field(default=None, max_length=32)


# schema for the multipart create / update forms
class ProductForm(ProductBase):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1, max_length=5000)

    @classmethod
    def from_form(cls, raw: dict[str, Any]) -> "ProductForm":
        """
        Validates raw form values.

        Blank values count as absent, so a required field sent as an empty
        string is reported as missing.

        :raises ProductValidationError: with a message naming every bad field.
        """
        values = {}
        for key, value in raw.items():
            if isinstance(value, str):
                value = value.strip()
            if value is None or value == "":
                continue
            values[key] = value

        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise ProductValidationError(describe_errors(e)) from e


def describe_errors(error: ValidationError) -> str:
    missing = []
    invalid = []
    for item in error.errors():
        field = str(item["loc"][0]) if item["loc"] else "form"
        if item["type"] == "missing":
            missing.append(field)
        else:
            invalid.append(f"{field}: {item['msg']}")

    parts = []
    if missing:
        # keep the declared field order, not the order pydantic reports them in
        ordered = [f for f in REQUIRED_FIELDS if f in missing]
        parts.append("Missing required fields: " + ", ".join(ordered))
    if invalid:
        parts.append("Invalid values: " + "; ".join(invalid))
    return ". ".join(parts)


class ProductPublic(ProductBase):
    id: int
    image_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class MessageResponse(SQLModel):
    message: str


class ProductUpdated(MessageResponse):
    product: ProductPublic
