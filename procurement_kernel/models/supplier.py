"""
Module: procurement_kernel.models.supplier
Responsibility: ORM persistence for suppliers and the digital products they
    sell.  These rows are reference data owned by the catalogue; the
    procurement core only reads them.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - slug is unique when present.  Internal suppliers carry no slug.
    - (supplier_id, sku) is unique: a SKU identifies one product per supplier.

Failure modes:
    - IntegrityError on duplicate slug (uq_supplier_slug).
    - IntegrityError on duplicate (supplier_id, sku) (uq_product_supplier_sku).
"""

from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from procurement_kernel.db.base import TrackedBase, UUIDString


class SupplierType(str, Enum):
    """Fulfilment model of a supplier.

    INTERNAL suppliers are fulfilled from stock and never called.
    EXTERNAL suppliers are drop-ship integrations selected by slug.
    """

    INTERNAL = "internal"
    EXTERNAL = "external"


class Supplier(TrackedBase):
    """
    A party the shop buys digital goods from.

    Guarantees:
        - is_external is derived from supplier_type.
        - slug selects the integration for external suppliers.
    """

    __tablename__ = "suppliers"

    __table_args__ = (
        UniqueConstraint("slug", name="uq_supplier_slug"),
        Index("idx_supplier_type", "supplier_type"),
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Integration key (ez_cards, gift2games); NULL for internal suppliers
    slug: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    supplier_type: Mapped[SupplierType] = mapped_column(
        String(20),
        nullable=False,
        default=SupplierType.INTERNAL,
    )

    products: Mapped[list["DigitalProduct"]] = relationship(
        back_populates="supplier",
    )

    @property
    def is_external(self) -> bool:
        return self.supplier_type == SupplierType.EXTERNAL

    def __repr__(self) -> str:
        return f"<Supplier {self.name} ({self.slug or 'internal'})>"


class DigitalProduct(TrackedBase):
    """
    A sellable digital product offered by exactly one supplier.

    cost_price is what the shop pays the supplier per unit and is snapshotted
    onto purchase order items at order time.
    """

    __tablename__ = "digital_products"

    __table_args__ = (
        UniqueConstraint("supplier_id", "sku", name="uq_product_supplier_sku"),
        Index("idx_product_supplier", "supplier_id"),
    )

    supplier_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("suppliers.id"),
        nullable=False,
    )

    # Supplier-side product identifier
    sku: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    cost_price: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    supplier: Mapped[Supplier] = relationship(
        back_populates="products",
    )

    def __repr__(self) -> str:
        return f"<DigitalProduct {self.sku}: {self.name}>"
