# exceptions.py


class ProductNotFound(Exception):
    """Raised when no listing exists for the requested id."""

    def __init__(self, product_id: int) -> None:
        super().__init__(f"Product {product_id} not found")
        self.product_id = product_id


class ProductValidationError(Exception):
    """Raised when submitted listing fields or the attached image are invalid."""

    pass


class ImageStorageError(Exception):
    """Raised when the storage backend fails to save or delete an image."""

    pass
