from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from chuka_market.schemas.product_schema import (
    MessageResponse,
    ProductPublic,
    ProductUpdated,
)
from chuka_market.services.product.product_service import ProductService

router = APIRouter(prefix="/products", tags=["Products"])

OptionalForm = Annotated[Optional[str], Form()]


async def product_form(
    title: OptionalForm = None,
    description: OptionalForm = None,
    price: OptionalForm = None,
    category: OptionalForm = None,
    location: OptionalForm = None,
    phone_number: OptionalForm = None,
) -> dict[str, Optional[str]]:
    # collected as plain strings, validation happens in the service so that
    # an unknown id is reported before a bad form
    return {
        "title": title,
        "description": description,
        "price": price,
        "category": category,
        "location": location,
        "phone_number": phone_number,
    }


@router.get(
    "",
    response_model=list[ProductPublic],
    summary="List all products",
    description="Returns every listing, newest first. Filtering happens on the client.",
)
async def read_products(
    *, product_service: ProductService = Depends(ProductService.get_dependency)
):
    return await product_service.list_products()


@router.get("/{product_id}", response_model=ProductPublic)
async def read_product(
    *,
    product_id: int,
    product_service: ProductService = Depends(ProductService.get_dependency),
):
    return await product_service.get_product(product_id)


@router.post(
    "",
    response_model=ProductPublic,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new product",
    description="Accepts multipart form data. The image, if any, is stored before the row is written.",
)
async def create_product(
    *,
    form: dict = Depends(product_form),
    image: Annotated[Optional[UploadFile], File()] = None,
    product_service: ProductService = Depends(ProductService.get_dependency),
):
    return await product_service.create_product(form, image)


@router.put("/{product_id}", response_model=ProductUpdated)
async def update_product(
    *,
    product_id: int,
    form: dict = Depends(product_form),
    image: Annotated[Optional[UploadFile], File()] = None,
    product_service: ProductService = Depends(ProductService.get_dependency),
):
    db_product = await product_service.update_product(product_id, form, image)
    return ProductUpdated(
        message="Product updated successfully",
        product=ProductPublic.model_validate(db_product),
    )


@router.delete("/{product_id}", response_model=MessageResponse)
async def delete_product(
    *,
    product_id: int,
    product_service: ProductService = Depends(ProductService.get_dependency),
):
    await product_service.delete_product(product_id)
    return MessageResponse(message="Product deleted successfully")
