from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import TIMESTAMP, Column, func
from sqlmodel import Field

from chuka_market.schemas.product_schema import ProductBase


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Product(ProductBase, table=True):
    __tablename__ = "products"

    id: Optional[int] = Field(default=None, primary_key=True)
    image_url: Optional[str] = Field(default=None, max_length=1024)

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(TIMESTAMP(timezone=True), nullable=False, index=True),
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(
            TIMESTAMP(timezone=True),
            nullable=False,
            server_default=func.now(),
        ),
    )
