"""Integration tests for the config and catalogue endpoints via TestClient."""

from protean.utils.globals import current_domain

from purchasing.catalogue.product import Product
from purchasing.settings.management import seed_defaults


class TestPricingConfig:
    def test_public_pricing_parameters(self, client):
        response = client.get("/config/pricing")
        assert response.status_code == 200
        assert response.json() == {"tax_rate": 19, "free_shipping_threshold": 100000, "default_shipping_cost": 5000}

    def test_admin_updates_tax_rate(self, client, auth, admin):
        seed_defaults()

        response = client.put("/config/tax_rate", json={"value": 10}, headers=auth(admin))

        assert response.status_code == 200
        assert response.json() == {"key": "tax_rate", "value": 10}
        assert client.get("/config/pricing").json()["tax_rate"] == 10

    def test_out_of_range_value_is_rejected(self, client, auth, admin):
        seed_defaults()
        response = client.put("/config/tax_rate", json={"value": 250}, headers=auth(admin))
        assert response.status_code == 400
        assert "value" in response.json()["errors"]

    def test_unknown_key(self, client, auth, admin):
        response = client.put("/config/nope", json={"value": 1}, headers=auth(admin))
        assert response.status_code == 404

    def test_customer_cannot_update(self, client, auth, customer):
        seed_defaults()
        response = client.put("/config/tax_rate", json={"value": 0}, headers=auth(customer))
        assert response.status_code == 403


class TestCatalogueSync:
    def test_creates_then_updates_product(self, client, auth, admin):
        body = {"name": "Café de grano 1kg", "price": 15990, "stock_quantity": 25}
        response = client.put("/catalogue/products/prod-cafe", json=body, headers=auth(admin))
        assert response.status_code == 200
        assert response.json() == {"product_id": "prod-cafe"}

        body.update(price=13990, on_sale=True, discount_percentage=15, stock_quantity=30)
        client.put("/catalogue/products/prod-cafe", json=body, headers=auth(admin))

        product = current_domain.repository_for(Product).get("prod-cafe")
        assert product.price == 13990
        assert product.on_sale is True
        assert product.stock_quantity == 30

    def test_negative_stock_is_rejected(self, client, auth, admin):
        response = client.put(
            "/catalogue/products/prod-cafe",
            json={"name": "Café", "price": 1000, "stock_quantity": -1},
            headers=auth(admin),
        )
        assert response.status_code == 422

    def test_customer_cannot_sync(self, client, auth, customer):
        response = client.put(
            "/catalogue/products/prod-cafe",
            json={"name": "Café", "price": 1000, "stock_quantity": 1},
            headers=auth(customer),
        )
        assert response.status_code == 403
