"""Shared pytest fixtures for payload, gateway and ledger tests."""

from __future__ import annotations

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from qrispay.config import QRISConfig
from qrispay.models import Base
from qrispay.qris_encoder import PayloadBuilder
from tests.payloads import MERCHANT_ID, make_static_payload


@pytest.fixture
def merchant_id() -> str:
    return MERCHANT_ID


@pytest.fixture
def base_payload() -> str:
    return make_static_payload()


@pytest.fixture
def qris_config(base_payload: str, merchant_id: str) -> QRISConfig:
    return QRISConfig(merchant_id=merchant_id, api_key="secret", base_qr_string=base_payload)


@pytest.fixture
def builder(qris_config: QRISConfig) -> PayloadBuilder:
    return PayloadBuilder(qris_config)


@pytest_asyncio.fixture
async def session() -> AsyncGenerator[AsyncSession, None]:
    """In-memory SQLite session with the invoice schema created."""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with factory() as db_session:
        yield db_session
    await engine.dispose()
