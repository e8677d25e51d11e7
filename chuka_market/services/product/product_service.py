import logging
from typing import Any, Optional

from fastapi import Depends, UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import desc, select

from chuka_market.api.dependencies import (
    get_app_settings,
    get_async_session,
    get_image_storage,
)
from chuka_market.core.config import Settings
from chuka_market.models.product_model import Product, utcnow
from chuka_market.schemas.product_schema import ProductForm
from chuka_market.services.product.exceptions import (
    ImageStorageError,
    ProductNotFound,
    ProductValidationError,
)
from chuka_market.services.storage.image_storage import ImageStorage, ImageUpload

logger = logging.getLogger(__name__)


class ProductService:
    """
    Create, read, update and delete operations over the `products` table.

    Writes that carry an image are two-phase: the image goes to storage first
    and the row second. When the row write fails the freshly stored image is
    deleted again. That cleanup is best effort, a failing delete is logged
    and the original database error is what reaches the caller.
    """

    def __init__(
        self,
        session: AsyncSession,
        storage: ImageStorage,
        max_image_bytes: int = 5 * 1024 * 1024,
        cleanup_orphaned_images: bool = True,
    ) -> None:
        self.session = session
        self.storage = storage
        self.max_image_bytes = max_image_bytes
        self.cleanup_orphaned_images = cleanup_orphaned_images

    async def list_products(self) -> list[Product]:
        query = select(Product).order_by(desc(Product.created_at), desc(Product.id))
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_product(self, product_id: int) -> Product:
        db_product = await self.session.get(Product, product_id)
        if db_product is None:
            raise ProductNotFound(product_id)
        return db_product

    async def create_product(
        self, raw_form: dict[str, Any], image: Optional[UploadFile] = None
    ) -> Product:
        form = ProductForm.from_form(raw_form)
        upload = await self.read_image(image)

        image_url = await self.storage.save(upload) if upload else None

        db_product = Product.model_validate(form, update={"image_url": image_url})
        try:
            self.session.add(db_product)
            await self.session.commit()
            await self.session.refresh(db_product)
        except SQLAlchemyError:
            await self.session.rollback()
            if image_url:
                await self.discard_image(image_url)
            raise

        logger.info("Created product %s (%s)", db_product.id, db_product.category)
        return db_product

    async def update_product(
        self,
        product_id: int,
        raw_form: dict[str, Any],
        image: Optional[UploadFile] = None,
    ) -> Product:
        db_product = await self.get_product(product_id)
        form = ProductForm.from_form(raw_form)
        upload = await self.read_image(image)

        previous_image_url = db_product.image_url
        new_image_url = await self.storage.save(upload) if upload else None

        # full replacement: every mutable field takes the submitted value,
        # absent optional fields become null
        db_product.sqlmodel_update(form.model_dump())
        if new_image_url:
            db_product.image_url = new_image_url
        db_product.updated_at = utcnow()

        try:
            self.session.add(db_product)
            await self.session.commit()
            await self.session.refresh(db_product)
        except SQLAlchemyError:
            await self.session.rollback()
            if new_image_url:
                await self.discard_image(new_image_url)
            raise

        if new_image_url and previous_image_url and self.cleanup_orphaned_images:
            await self.discard_image(previous_image_url)

        logger.info("Updated product %s", product_id)
        return db_product

    async def delete_product(self, product_id: int) -> None:
        db_product = await self.get_product(product_id)
        image_url = db_product.image_url

        try:
            await self.session.delete(db_product)
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise

        if image_url and self.cleanup_orphaned_images:
            await self.discard_image(image_url)

        logger.info("Deleted product %s", product_id)

    async def read_image(self, image: Optional[UploadFile]) -> ImageUpload | None:
        # browsers send an empty part when no file was chosen
        if image is None or not image.filename:
            return None

        data = await image.read()
        if not data:
            return None

        content_type = image.content_type or ""
        if not content_type.startswith("image/"):
            raise ProductValidationError(
                f"Unsupported image type '{content_type or 'unknown'}'"
            )
        if len(data) > self.max_image_bytes:
            raise ProductValidationError(
                f"Image is larger than {self.max_image_bytes} bytes"
            )

        return ImageUpload(filename=image.filename, content_type=content_type, data=data)

    async def discard_image(self, image_url: str) -> None:
        try:
            await self.storage.delete(image_url)
        except ImageStorageError:
            logger.exception("Could not remove image %s, it is left orphaned", image_url)

    @classmethod
    async def get_dependency(
        cls,
        session: AsyncSession = Depends(get_async_session),
        storage: ImageStorage = Depends(get_image_storage),
        settings: Settings = Depends(get_app_settings),
    ) -> "ProductService":
        return cls(
            session,
            storage,
            max_image_bytes=settings.max_image_bytes,
            cleanup_orphaned_images=settings.cleanup_orphaned_images,
        )
