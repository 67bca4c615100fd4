"""
API tests for the catalog endpoints

Author: ReadyMix
Date: 2025-06-13
"""
import io
from unittest.mock import patch

from readymix.core.auth import get_current_user_optional
from readymix.main import app
from tests.conftest import make_product


class TestProductsApi:

    @patch('readymix.api.products.ProductRepository')
    def test_anonymous_list_is_published_only(self, mock_repo_cls, client):
        mock_repo_cls.return_value.find_all.return_value = ([make_product()], 1)

        response = client.get("/api/v1/products/", params={"status": "draft", "limit": 5})

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        assert body["total"] == 1
        assert body["data"][0]["normal_price"] == 250.0
        kwargs = mock_repo_cls.return_value.find_all.call_args.kwargs
        assert kwargs["status"] == "published"
        assert kwargs["limit"] == 5

    @patch('readymix.api.products.ProductRepository')
    def test_staff_can_filter_drafts(self, mock_repo_cls, client, staff_user):
        app.dependency_overrides[get_current_user_optional] = lambda: staff_user
        mock_repo_cls.return_value.find_all.return_value = ([], 0)

        client.get("/api/v1/products/", params={"status": "draft"})

        assert mock_repo_cls.return_value.find_all.call_args.kwargs["status"] == "draft"

    @patch('readymix.api.products.ProductRepository')
    def test_draft_product_hidden_from_customers(self, mock_repo_cls, client):
        mock_repo_cls.return_value.find_by_id.return_value = make_product(status="draft")

        response = client.get("/api/v1/products/p-1")

        assert response.status_code == 404

    @patch('readymix.api.products.ProductRepository')
    def test_stock(self, mock_repo_cls, client):
        mock_repo_cls.return_value.get_stock.return_value = {'id': "p-1", 'name': "N25 Concrete", 'stock_quantity': 12}

        response = client.get("/api/v1/products/p-1/stock")

        assert response.json()["data"] == {"id": "p-1", "name": "N25 Concrete", "stock_quantity": 12}

    def test_search_requires_query(self, client):
        assert client.get("/api/v1/products/search").status_code == 422

    def test_export_requires_staff(self, client, login, customer):
        login(customer)

        response = client.get("/api/v1/products/export")

        assert response.status_code == 403

    @patch('readymix.api.products.ExportService')
    def test_export_csv(self, mock_export_cls, client, login, staff_user):
        login(staff_user)
        mock_export_cls.return_value.export_products.return_value = (
            io.BytesIO(b"name\nN25 Concrete\n"), "text/csv", "products_20250613.csv"
        )

        response = client.get("/api/v1/products/export", params={"format": "csv"})

        assert response.status_code == 200
        assert response.headers["content-disposition"] == "attachment; filename=products_20250613.csv"
        assert response.text == "name\nN25 Concrete\n"
