#!/usr/bin/env python
from sdk.pyinventory import CatalogClient


def main():
    c = CatalogClient(base_url="http://127.0.0.1:8085")

    # -----------------------------
    # Reset everything for demo
    # -----------------------------
    print("Resetting store...")
    c.reset()

    # -----------------------------
    # Categories
    # -----------------------------
    print("\nCreating categories...")
    electronics = c.create_category("Electronics", "Computers and accessories")
    office = c.create_category("Office", "Desk supplies")
    print(electronics)
    print(office)

    # -----------------------------
    # Products
    # -----------------------------
    print("\nCreating products...")
    c.create_product("LAP-001", "Laptop", "1499.00", 3, "15 inch, 16GB", electronics["id"])
    c.create_product("MOU-001", "Mouse", "19.99", 40, "Wireless", electronics["id"])
    c.create_product("CBL-001", "USB-C Cable", "9.99", 0, None, electronics["id"])
    c.create_product("STP-001", "Stapler", "12.50", 7, "Blue Widget Deluxe", office["id"])
    c.create_product("MUG-001", "Coffee Mug", "6.00", 25)

    # -----------------------------
    # Queries
    # -----------------------------
    print("\nFirst page, sorted by price descending...")
    print(c.list_products(size=3, sort_by="price", direction="desc"))

    print("\nKeyword search for 'widget'...")
    print(c.search_products("widget"))

    print("\nPrice range 10.00 - 20.00...")
    print(c.price_range("10.00", "20.00"))

    print("\nLow stock (< 10)...")
    print(c.low_stock())

    print("\nOut of stock...")
    print(c.out_of_stock())

    # -----------------------------
    # Category delete guard
    # -----------------------------
    print("\nTrying to delete a category that still has products...")
    print(c.delete_category(electronics["id"]))

    print("\nCategories with product counts...")
    print(c.list_categories(sort_by="product_count", direction="desc"))


if __name__ == "__main__":
    main()
