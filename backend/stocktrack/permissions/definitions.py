# Overview: All capability definitions organized by category.
# Each capability is defined as: (code, name, description, category)


class CapabilityCategory:
    """Capability categories for grouping and display."""
    CATALOG = "CATALOG"
    INVENTORY = "INVENTORY"
    TRANSFERS = "TRANSFERS"
    SALES = "SALES"


CATALOG_CAPABILITIES = [
    (
        "VIEW_CATALOG",
        "View Catalog",
        "View categories, items and warehouses",
        CapabilityCategory.CATALOG,
    ),
    (
        "MANAGE_CATALOG",
        "Manage Catalog",
        "Create, edit, deactivate and delete categories, items and warehouses",
        CapabilityCategory.CATALOG,
    ),
]

INVENTORY_CAPABILITIES = [
    (
        "VIEW_INVENTORY",
        "View Inventory",
        "View balances, movement log and low-stock alerts",
        CapabilityCategory.INVENTORY,
    ),
    (
        "ASSIGN_STOCK",
        "Assign Stock",
        "Add stock of an item to a warehouse (ADD movements)",
        CapabilityCategory.INVENTORY,
    ),
    (
        "ADJUST_STOCK",
        "Adjust Stock",
        "Correct warehouse quantities (ADJUSTMENT movements)",
        CapabilityCategory.INVENTORY,
    ),
]

TRANSFER_CAPABILITIES = [
    (
        "VIEW_TRANSFERS",
        "View Transfers",
        "View transfer requests and their statistics",
        CapabilityCategory.TRANSFERS,
    ),
    (
        "CREATE_TRANSFER",
        "Create Transfer",
        "Request stock to move out of the actor's own warehouse",
        CapabilityCategory.TRANSFERS,
    ),
    (
        "APPROVE_TRANSFER",
        "Approve Transfer",
        "Approve (and thereby execute) or reject pending transfer requests",
        CapabilityCategory.TRANSFERS,
    ),
    (
        "CANCEL_TRANSFER",
        "Cancel Transfer",
        "Cancel pending transfer requests",
        CapabilityCategory.TRANSFERS,
    ),
]

SALES_CAPABILITIES = [
    (
        "VIEW_SALES",
        "View Sales",
        "View sales documents",
        CapabilityCategory.SALES,
    ),
    (
        "CREATE_SALE",
        "Create Sale",
        "Record a completed sale (SALE movements)",
        CapabilityCategory.SALES,
    ),
    (
        "CANCEL_SALE",
        "Cancel Sale",
        "Cancel a completed sale and restock its lines",
        CapabilityCategory.SALES,
    ),
]

CAPABILITY_DEFINITIONS = (
    CATALOG_CAPABILITIES
    + INVENTORY_CAPABILITIES
    + TRANSFER_CAPABILITIES
    + SALES_CAPABILITIES
)
