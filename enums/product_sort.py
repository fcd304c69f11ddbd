from enum import Enum


class ProductSort(Enum):
    DEFAULT = "default"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    STOCK = "stock"
    SOLD = "sold"
