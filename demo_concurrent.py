import asyncio
from sdk.pyinventory import CatalogClient
import requests


async def simulate_create(client, label, sku, category_id):
    resp = await client.create_product_async(sku, f"Widget from {label}", "4.99", 10, category_id)
    if resp.status_code == 201:
        print(f"✅ {label} created {sku} (id {resp.json()['id']})")
    elif resp.status_code == 409:
        print(f"❌ {label} rejected: {resp.json()['detail']}")
    else:
        print(f"⚠️  {label} unexpected response {resp.status_code}: {resp.text}")


async def simulate_delete(client, category_id):
    # run the blocking SDK call off the event loop so it really races the creates
    resp = await asyncio.to_thread(client.delete_category, category_id)
    print(f"🗑️  delete category {category_id}: {resp}")


async def main():
    c = CatalogClient(base_url="http://127.0.0.1:8085")

    # Reset store if available
    try:
        c.reset()
    except requests.exceptions.RequestException:
        pass

    category = c.create_category("Gadgets")
    print(f"\n🏷️  Created category: {category}")

    # Five writers race for the same SKU while the category is being deleted
    print("\n⚡ Simulating concurrent creates with one SKU...")
    await asyncio.gather(
        *(simulate_create(c, f"writer-{i}", "RACE-001", category["id"]) for i in range(5)),
        simulate_delete(c, category["id"]),
    )

    # Show final state: exactly one RACE-001, and the category exists iff it is referenced
    print("\n📦 Final products:", c.list_products(keyword="RACE-001"))
    print("🏷️  Final categories:", c.list_categories())


if __name__ == "__main__":
    asyncio.run(main())
