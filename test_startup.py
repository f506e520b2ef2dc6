from unittest.mock import patch

import pytest
from sqlalchemy import inspect

from config import settings
from db import engine
from main import startup


@pytest.mark.asyncio
async def test_startup_creates_tables_when_enabled():
    with patch.object(settings, "AUTO_CREATE_TABLES", True):
        await startup()

    assert "users" in inspect(engine).get_table_names()


@pytest.mark.asyncio
async def test_startup_leaves_schema_alone_by_default():
    with patch("main.init_db") as mock_init:
        await startup()

    mock_init.assert_not_called()
