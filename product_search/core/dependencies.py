"""
FastAPI dependencies - injection for the Elasticsearch client, repository and service (SOLID: Dependency Inversion).
Challenge: One override point for tests (get_product_service).
"""

from typing import Annotated

from elasticsearch import AsyncElasticsearch
from fastapi import Depends

from product_search.config import get_settings
from product_search.repositories.product_repository import ProductRepository
from product_search.search.elasticsearch_client import get_elasticsearch
from product_search.services.product_service import ProductService

EsClient = Annotated[AsyncElasticsearch, Depends(get_elasticsearch)]


def get_product_repository(es: EsClient) -> ProductRepository:
    return ProductRepository(es, get_settings())


def get_product_service(
    repo: Annotated[ProductRepository, Depends(get_product_repository)],
) -> ProductService:
    """Factory for service with repository injection (Dependency Inversion)."""
    return ProductService(repo, get_settings())


ProductServiceDep = Annotated[ProductService, Depends(get_product_service)]
