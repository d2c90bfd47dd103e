"""
Procurement kernel: persistence, encryption and status rules for digital-goods
purchase orders.

Outer packages (suppliers, ingestion, batch, services) depend on the kernel;
the kernel depends on none of them.
"""
