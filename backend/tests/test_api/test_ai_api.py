"""
API tests for AI endpoints, chat health and service health

Author: ReadyMix
Date: 2025-06-13
"""
from unittest.mock import AsyncMock, MagicMock, patch

from readymix.core.exceptions import ValidationError


class TestDetectApi:

    def test_rejects_non_images(self, client):
        response = client.post(
            "/api/v1/ai/detect",
            files={"image": ("notes.txt", b"hello", "text/plain")}
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid file type. Please upload an image."

    def test_rejects_empty_image(self, client):
        response = client.post(
            "/api/v1/ai/detect",
            files={"image": ("site.jpg", b"", "image/jpeg")}
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Empty image file"

    @patch('readymix.api.ai.SiteAnalysisService')
    def test_analysis(self, mock_service_cls, client):
        mock_service_cls.return_value.analyze = AsyncMock(return_value={
            'recommended_product': {'grade': "N20"},
            'estimated_quantity': 8.0,
        })

        response = client.post(
            "/api/v1/ai/detect",
            files={"image": ("site.jpg", b"\xff\xd8\xff", "image/jpeg")}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["estimated_quantity"] == 8.0
        mock_service_cls.return_value.analyze.assert_awaited_once_with(b"\xff\xd8\xff")


class TestCompareApi:

    @patch('readymix.api.ai.AIComparisonService')
    def test_validation_error(self, mock_service_cls, client):
        mock_service_cls.return_value.compare.side_effect = ValidationError("Select between 2 and 4 products")

        response = client.post("/api/v1/ai/compare", json={"product_ids": ["p-1"]})

        assert response.status_code == 400

    def test_insights_require_staff(self, client, login, customer):
        login(customer)

        assert client.get("/api/v1/ai/insights").status_code == 403


class TestHealth:

    def test_root(self, client):
        body = client.get("/").json()

        assert body["status"] == "online"

    def test_chat_health_without_key(self, client):
        body = client.get("/api/v1/chat/health").json()

        assert body["status"] == "not_configured"
        assert body["api_key_configured"] is False

    @patch('readymix.main.get_db_connection_with_retry')
    def test_health_connected(self, mock_connect, client):
        mock_connect.return_value = MagicMock()

        body = client.get("/health").json()

        assert body["status"] == "healthy"
        assert body["database"]["status"] == "connected"
        mock_connect.assert_called_once_with(max_retries=2, retry_delay=0.5)

    @patch('readymix.main.get_db_connection_with_retry')
    def test_health_database_down(self, mock_connect, client):
        mock_connect.side_effect = Exception("connection refused")

        body = client.get("/health").json()

        assert body["status"] == "unhealthy"
        assert body["database"] == {
            "status": "disconnected",
            "latency_ms": None,
            "error": "connection refused",
            "connection_timeout_s": 10,
        }
