"""
Module: procurement_kernel.selectors.catalog_selector
Responsibility: Supplier and product lookups used when pricing and routing a
    new purchase order.
Architecture position: Kernel > Selectors.
"""

from uuid import UUID

from procurement_kernel.domain.dtos import ProductInfo, SupplierInfo
from procurement_kernel.models.supplier import DigitalProduct, Supplier
from procurement_kernel.selectors.base import BaseSelector


class CatalogSelector(BaseSelector[Supplier]):
    """Read side of the supplier catalogue."""

    def find_supplier(self, supplier_id: UUID) -> SupplierInfo | None:
        supplier = self.session.get(Supplier, supplier_id)
        if supplier is None:
            return None
        return SupplierInfo(
            supplier_id=supplier.id,
            name=supplier.name,
            slug=supplier.slug,
            is_external=supplier.is_external,
        )

    def find_product(self, product_id: UUID) -> ProductInfo | None:
        product = self.session.get(DigitalProduct, product_id)
        if product is None:
            return None
        return ProductInfo(
            product_id=product.id,
            supplier_id=product.supplier_id,
            sku=product.sku,
            unit_cost=product.cost_price,
        )
