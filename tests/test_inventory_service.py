"""Tests that drive the inventory service layer directly."""

import asyncio

import pytest
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from sweetshop.core.exceptions import InsufficientStock, InvalidQuantity, NotFound
from sweetshop.db.base import Base
from sweetshop.models.sweet import Sweet
from sweetshop.schemas.sweet import SearchFilters, SweetCreate, SweetUpdate
from sweetshop.services import inventory


@pytest.mark.asyncio
async def test_create_applies_defaults(db_session: AsyncSession):
    sweet = await inventory.create_sweet(
        db_session, SweetCreate(name="Toffee", category="Candy", price=1.25)
    )
    assert sweet.id is not None
    assert sweet.quantity == 0
    assert sweet.created_at is not None


@pytest.mark.asyncio
async def test_repeated_purchases_never_go_negative(db_session: AsyncSession, make_sweet):
    sweet = await make_sweet("Mints", quantity=7)
    sweet_id = sweet.id  # rejected purchases roll back and expire the instance

    sold = 0
    rejected = 0
    for _ in range(5):
        try:
            current = await inventory.purchase_sweet(db_session, sweet_id, 3)
            sold += 3
            assert current.quantity >= 0
        except InsufficientStock as exc:
            rejected += 1
            assert exc.available == 7 - sold

    assert sold == 6
    assert rejected == 3
    reloaded = await db_session.get(Sweet, sweet_id, populate_existing=True)
    assert reloaded.quantity == 1


@pytest.mark.asyncio
async def test_purchase_checks_stored_stock_not_cached_object(db_session: AsyncSession, make_sweet):
    sweet = await make_sweet("Caramels", quantity=10)

    # Another writer drains the stock behind this session's back
    await db_session.execute(
        update(Sweet)
        .where(Sweet.id == sweet.id)
        .values(quantity=1)
        .execution_options(synchronize_session=False)
    )
    await db_session.commit()
    assert sweet.quantity == 10  # identity map is stale

    with pytest.raises(InsufficientStock) as excinfo:
        await inventory.purchase_sweet(db_session, sweet.id, 5)
    assert excinfo.value.available == 1


@pytest.mark.asyncio
async def test_purchase_missing_sweet(db_session: AsyncSession):
    with pytest.raises(NotFound):
        await inventory.purchase_sweet(db_session, 404, 1)


@pytest.mark.asyncio
async def test_purchase_rejects_zero(db_session: AsyncSession, make_sweet):
    sweet = await make_sweet("Nougat", quantity=4)
    with pytest.raises(InvalidQuantity):
        await inventory.purchase_sweet(db_session, sweet.id, 0)


@pytest.mark.asyncio
async def test_restock_checks_quantity_before_lookup(db_session: AsyncSession):
    # Bad amount wins over the missing record
    with pytest.raises(InvalidQuantity):
        await inventory.restock_sweet(db_session, 404, 0)
    with pytest.raises(InvalidQuantity):
        await inventory.restock_sweet(db_session, 404, None)
    with pytest.raises(NotFound):
        await inventory.restock_sweet(db_session, 404, 5)


@pytest.mark.asyncio
async def test_restock_updates_timestamp(db_session: AsyncSession, make_sweet):
    sweet = await make_sweet("Licorice", quantity=1)
    before = sweet.updated_at

    restocked = await inventory.restock_sweet(db_session, sweet.id, 9)
    assert restocked.quantity == 10
    assert restocked.updated_at >= before


@pytest.mark.asyncio
async def test_update_ignores_unsent_fields(db_session: AsyncSession, make_sweet):
    sweet = await make_sweet("Brittle", category="Candy", price=2.0, quantity=12)

    updated = await inventory.update_sweet(db_session, sweet.id, SweetUpdate(category="Nut"))
    assert updated.category == "Nut"
    assert updated.name == "Brittle"
    assert updated.price == 2.0
    assert updated.quantity == 12


@pytest.mark.asyncio
async def test_update_and_delete_missing(db_session: AsyncSession):
    with pytest.raises(NotFound):
        await inventory.update_sweet(db_session, 404, SweetUpdate(name="Ghost"))
    with pytest.raises(NotFound):
        await inventory.delete_sweet(db_session, 404)


@pytest.mark.asyncio
async def test_search_combines_filters(db_session: AsyncSession, make_sweet):
    await make_sweet("Milk Chocolate", category="Chocolate", price=3.0)
    await make_sweet("White Chocolate", category="Chocolate", price=6.0)
    await make_sweet("Chocolate Mice", category="Novelty", price=3.0)

    found = await inventory.search_sweets(
        db_session, SearchFilters(name="CHOC", category="choc", max_price=5)
    )
    assert [s.name for s in found] == ["Milk Chocolate"]

    everything = await inventory.search_sweets(db_session, SearchFilters())
    listed = await inventory.list_sweets(db_session)
    assert [s.id for s in everything] == [s.id for s in listed]


# ── Overlapping requests on separate connections ────────────────────
@pytest.fixture
async def file_session_factory(tmp_path):
    """Sessions on a file-backed database, each with its own connection."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'shop.db'}",
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


async def _seed(factory, quantity: int) -> int:
    async with factory() as session:
        sweet = await inventory.create_sweet(
            session, SweetCreate(name="Gobstoppers", category="Candy", price=0.5, quantity=quantity)
        )
        return sweet.id


async def _stored_quantity(factory, sweet_id: int) -> int:
    async with factory() as session:
        return (await session.get(Sweet, sweet_id)).quantity


@pytest.mark.asyncio
async def test_concurrent_purchases_never_oversell(file_session_factory):
    sweet_id = await _seed(file_session_factory, 12)

    async def buy():
        async with file_session_factory() as session:
            return await inventory.purchase_sweet(session, sweet_id, 1)

    results = await asyncio.gather(*(buy() for _ in range(20)), return_exceptions=True)

    sold = [r for r in results if isinstance(r, Sweet)]
    rejected = [r for r in results if isinstance(r, InsufficientStock)]
    assert len(sold) == 12
    assert len(rejected) == 8
    assert all(exc.available == 0 for exc in rejected)
    assert await _stored_quantity(file_session_factory, sweet_id) == 0


@pytest.mark.asyncio
async def test_concurrent_stock_changes_lose_no_updates(file_session_factory):
    sweet_id = await _seed(file_session_factory, 50)

    async def buy():
        async with file_session_factory() as session:
            return await inventory.purchase_sweet(session, sweet_id, 2)

    async def restock():
        async with file_session_factory() as session:
            return await inventory.restock_sweet(session, sweet_id, 3)

    results = await asyncio.gather(
        *(buy() for _ in range(10)),
        *(restock() for _ in range(10)),
        return_exceptions=True,
    )

    assert all(isinstance(r, Sweet) for r in results), results
    assert await _stored_quantity(file_session_factory, sweet_id) == 50 - 20 + 30
