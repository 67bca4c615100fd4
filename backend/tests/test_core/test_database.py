"""
Unit tests for database URL handling
"""
import pytest

from readymix.core.database import engine, sqlalchemy_url


class TestSqlalchemyUrl:

    @pytest.mark.parametrize("url, expected", [
        ("postgresql://u:p@db:5432/readymix", "postgresql+psycopg2://u:p@db:5432/readymix"),
        ("postgres://u:p@db:5432/readymix", "postgresql+psycopg2://u:p@db:5432/readymix"),
        ("postgresql+psycopg2://u:p@db/readymix", "postgresql+psycopg2://u:p@db/readymix"),
    ])
    def test_driver_is_pinned(self, url, expected):
        assert sqlalchemy_url(url) == expected

    def test_engine_uses_psycopg2(self):
        assert engine.dialect.driver == "psycopg2"
