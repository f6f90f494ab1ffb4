# Repository pattern: abstract Elasticsearch access (SOLID - Dependency Inversion)

from product_search.repositories.product_repository import ProductRepository

__all__ = ["ProductRepository"]
