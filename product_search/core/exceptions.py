"""Domain errors raised by the service and repository layers; endpoints map them to status codes."""


class ProductSearchError(Exception):
    """Base class for product search errors."""


class InvalidProductRequest(ProductSearchError):
    """Request failed a service-level check (400)."""


class ProductNotFound(ProductSearchError):
    """Product document does not exist (404)."""

    def __init__(self, product_id: str):
        super().__init__(f"Product {product_id} not found")
        self.product_id = product_id


class SearchResponseError(ProductSearchError):
    """Elasticsearch answered with a body we could not interpret (500)."""
