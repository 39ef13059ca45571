"""Read-only access to the product catalog."""

import logging

from supabase import Client

from src.core.supabase import execute_query, get_supabase_client
from src.models.product import Product

logger = logging.getLogger(__name__)


class CatalogService:
    """Looks up products for pricing and stock checks. Never writes."""

    def __init__(self, supabase_client: Client | None = None) -> None:
        """Initialize catalog service.

        Args:
            supabase_client: Optional Supabase client for testing.
        """
        self._supabase_client = supabase_client

    @property
    def supabase(self) -> Client:
        """Get Supabase client."""
        if self._supabase_client is None:
            self._supabase_client = get_supabase_client()
        return self._supabase_client

    async def get_product(self, product_id: str) -> Product | None:
        """Get a product by ID.

        Args:
            product_id: The product's ID.

        Returns:
            Product | None: The product row or None if not found.
        """
        response = execute_query(
            self.supabase.table("products")
            .select("id, name, image, price, in_stock, unit, amount")
            .eq("id", product_id)
            .maybe_single(),
            "get_product",
            product_id=product_id,
        )

        return response.data if response and response.data else None
