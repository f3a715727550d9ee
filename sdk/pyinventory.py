# sdk/pyinventory.py
import httpx
import requests
from typing import Any, Dict, List, Optional
from rich import print


class CatalogClient:
    def __init__(self, base_url: str = "http://localhost:8085", timeout: int = 10, session: Any = None):
        self.base_url = base_url.rstrip("/")
        # anything with requests.Session's get/post/put/delete works here (e.g. a TestClient)
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None):
        r = self.session.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def reset(self):
        return self.session.post(f"{self.base_url}/reset").json()

    # Products
    def create_product(self, sku: str, name: str, price: str, quantity: int,
                       description: Optional[str] = None, category_id: Optional[int] = None):
        r = self.session.post(f"{self.base_url}/products", json={
            "sku": sku, "name": name, "price": str(price), "quantity": quantity,
            "description": description, "category_id": category_id
        }, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def update_product(self, product_id: int, **fields):
        r = self.session.put(f"{self.base_url}/products/{product_id}", json=fields, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def delete_product(self, product_id: int):
        r = self.session.delete(f"{self.base_url}/products/{product_id}", timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def get_product(self, product_id: int):
        return self._get(f"/products/{product_id}")

    def list_products(self, page: int = 0, size: int = 10, sort_by: str = "name", direction: str = "asc", **filters):
        params = {k: v for k, v in filters.items() if v is not None}
        params.update({"page": page, "size": size, "sort_by": sort_by, "direction": direction})
        return self._get("/products", params=params)

    def search_products(self, keyword: str, page: int = 0, size: int = 10):
        return self._get("/products/search", params={"keyword": keyword, "page": page, "size": size})

    def low_stock(self, threshold: Optional[int] = None):
        params = {"threshold": threshold} if threshold is not None else None
        return self._get("/products/low-stock", params=params)

    def out_of_stock(self) -> List[Dict[str, Any]]:
        return self._get("/products/out-of-stock")

    def price_range(self, min_price: str, max_price: str, page: int = 0, size: int = 10):
        return self._get("/products/price-range", params={
            "min_price": str(min_price), "max_price": str(max_price), "page": page, "size": size
        })

    # Async create
    async def create_product_async(self, sku: str, name: str, price: str, quantity: int,
                                   category_id: Optional[int] = None):
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.post(f"{self.base_url}/products", json={
                "sku": sku, "name": name, "price": str(price), "quantity": quantity,
                "category_id": category_id
            })
            # callers inspect the 409 on duplicate SKU
            return r

    # Categories
    def create_category(self, name: str, description: Optional[str] = None):
        r = self.session.post(f"{self.base_url}/categories", json={
            "name": name, "description": description
        }, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def update_category(self, category_id: int, name: str, description: Optional[str] = None):
        r = self.session.put(f"{self.base_url}/categories/{category_id}", json={
            "name": name, "description": description
        }, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def delete_category(self, category_id: int):
        r = self.session.delete(f"{self.base_url}/categories/{category_id}", timeout=self.timeout)
        # 409 means the category still has products; return the body so callers can show it
        if r.status_code == 409:
            return r.json()
        r.raise_for_status()
        return r.json()

    def get_category(self, category_id: int):
        return self._get(f"/categories/{category_id}")

    def list_categories(self, page: int = 0, size: int = 10, sort_by: str = "name", direction: str = "asc", **filters):
        params = {k: v for k, v in filters.items() if v is not None}
        params.update({"page": page, "size": size, "sort_by": sort_by, "direction": direction})
        return self._get("/categories", params=params)


if __name__ == "__main__":
    import argparse
    from sdk.pyinventory import CatalogClient

    parser = argparse.ArgumentParser(description="PyInventory CLI")
    parser.add_argument("--base-url", default="http://127.0.0.1:8085")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # ---------------------------
    # Product commands
    # ---------------------------
    lp = subparsers.add_parser("list-products", help="List products")
    lp.add_argument("--keyword", help="Substring of name, SKU or description")
    lp.add_argument("--category-name", help="Substring of the category name")
    lp.add_argument("--min-price")
    lp.add_argument("--max-price")
    lp.add_argument("--page", type=int, default=0)
    lp.add_argument("--size", type=int, default=10)
    lp.add_argument("--sort-by", default="name")
    lp.add_argument("--direction", default="asc")

    sp = subparsers.add_parser("search", help="Search products by keyword")
    sp.add_argument("--keyword", required=True)

    gp = subparsers.add_parser("get-product", help="Get a product by its ID")
    gp.add_argument("--product-id", type=int, required=True)

    cp = subparsers.add_parser("create-product", help="Create a product")
    cp.add_argument("--sku", required=True)
    cp.add_argument("--name", required=True)
    cp.add_argument("--price", required=True, help="Decimal price, e.g. 19.99")
    cp.add_argument("--quantity", type=int, required=True)
    cp.add_argument("--description")
    cp.add_argument("--category-id", type=int)

    dp = subparsers.add_parser("delete-product", help="Delete a product")
    dp.add_argument("--product-id", type=int, required=True)

    ls = subparsers.add_parser("low-stock", help="Products below a stock threshold")
    ls.add_argument("--threshold", type=int)

    # ---------------------------
    # Category commands
    # ---------------------------
    lc = subparsers.add_parser("list-categories", help="List categories")
    lc.add_argument("--name", help="Substring of the category name")

    cc = subparsers.add_parser("create-category", help="Create a category")
    cc.add_argument("--name", required=True)
    cc.add_argument("--description")

    dc = subparsers.add_parser("delete-category", help="Delete an unreferenced category")
    dc.add_argument("--category-id", type=int, required=True)

    # ---------------------------
    # Parse and execute
    # ---------------------------
    args = parser.parse_args()
    c = CatalogClient(base_url=args.base_url)

    if args.command == "list-products":
        print(c.list_products(args.page, args.size, args.sort_by, args.direction,
                              keyword=args.keyword, category_name=args.category_name,
                              min_price=args.min_price, max_price=args.max_price))
    elif args.command == "search":
        print(c.search_products(args.keyword))
    elif args.command == "get-product":
        print(c.get_product(args.product_id))
    elif args.command == "create-product":
        print(c.create_product(args.sku, args.name, args.price, args.quantity,
                               args.description, args.category_id))
    elif args.command == "delete-product":
        print(c.delete_product(args.product_id))
    elif args.command == "low-stock":
        print(c.low_stock(args.threshold))
    elif args.command == "list-categories":
        print(c.list_categories(name=args.name))
    elif args.command == "create-category":
        print(c.create_category(args.name, args.description))
    elif args.command == "delete-category":
        print(c.delete_category(args.category_id))
