"""Public gluten-free product catalogue import."""

from celiac_ledger.catalogue.importer import (
    categorize_product,
    clean_name,
    import_catalogue,
    parse_price,
    read_catalogue,
)

__all__ = [
    "categorize_product",
    "clean_name",
    "import_catalogue",
    "parse_price",
    "read_catalogue",
]
