from enum import Enum


# https://github.com/fastapi/sqlmodel/issues/96#issuecomment-921179607
class ProductCategory(str, Enum):
    ELECTRONICS = "electronics"
    FURNITURE = "furniture"
    CLOTHING = "clothing"
    BOOKS = "books"
    OTHER = "other"
