"""Tests for the bonus ledger (``ClientRepository``)."""

import pytest

from mytaxi.domain.enums import BonusTransactionKind
from mytaxi.domain.errors import (
    AlreadyRegistered,
    ClientNotFound,
    InsufficientBalance,
    InvalidAmount,
    InvalidPhoneNumber,
)
from mytaxi.infrastructure.repositories import ClientRepository


@pytest.mark.asyncio
async def test_new_client_balance(db_session):
    ledger = ClientRepository(db_session)
    client = await ledger.create_client(
        name="Olena", email="olena@example.com", bonus_amount=20.0
    )
    assert await ledger.balance_of(client.id) == 20.0
    assert client.has_active_order is False


@pytest.mark.asyncio
async def test_balance_of_unknown_client(db_session):
    with pytest.raises(ClientNotFound):
        await ClientRepository(db_session).balance_of(404)


@pytest.mark.asyncio
async def test_credit_adds(db_session):
    ledger = ClientRepository(db_session)
    client = await ledger.create_client(name="A", email="a@example.com", bonus_amount=20.0)
    assert await ledger.credit(client.id, 7.5) == 27.5
    assert await ledger.balance_of(client.id) == 27.5


@pytest.mark.asyncio
async def test_credit_zero_is_allowed(db_session):
    ledger = ClientRepository(db_session)
    client = await ledger.create_client(name="A", email="a@example.com", bonus_amount=1.0)
    assert await ledger.credit(client.id, 0.0) == 1.0


@pytest.mark.asyncio
async def test_negative_credit_rejected(db_session):
    ledger = ClientRepository(db_session)
    client = await ledger.create_client(name="A", email="a@example.com", bonus_amount=1.0)
    with pytest.raises(InvalidAmount):
        await ledger.credit(client.id, -1.0)
    assert await ledger.balance_of(client.id) == 1.0


@pytest.mark.asyncio
async def test_debit_subtracts(db_session):
    ledger = ClientRepository(db_session)
    client = await ledger.create_client(name="A", email="a@example.com", bonus_amount=20.0)
    assert await ledger.debit(client.id, 20.0) == 0.0


@pytest.mark.asyncio
async def test_debit_beyond_balance_rejected(db_session):
    ledger = ClientRepository(db_session)
    client = await ledger.create_client(name="A", email="a@example.com", bonus_amount=20.0)
    with pytest.raises(InsufficientBalance):
        await ledger.debit(client.id, 20.01)
    assert await ledger.balance_of(client.id) == 20.0


@pytest.mark.asyncio
async def test_negative_debit_rejected(db_session):
    ledger = ClientRepository(db_session)
    client = await ledger.create_client(name="A", email="a@example.com", bonus_amount=5.0)
    with pytest.raises(InvalidAmount):
        await ledger.debit(client.id, -3.0)


@pytest.mark.asyncio
async def test_mutating_unknown_client(db_session):
    ledger = ClientRepository(db_session)
    with pytest.raises(ClientNotFound):
        await ledger.credit(404, 1.0)
    with pytest.raises(ClientNotFound):
        await ledger.debit(404, 1.0)


@pytest.mark.asyncio
async def test_history_records_signed_amounts(db_session):
    ledger = ClientRepository(db_session)
    client = await ledger.create_client(name="A", email="a@example.com", bonus_amount=10.0)
    await ledger.credit(client.id, 5.0, kind=BonusTransactionKind.TOP_UP)
    await ledger.debit(client.id, 12.0)

    history = await ledger.history(client.id)
    assert [(t.kind, t.amount, t.balance_after) for t in history] == [
        (BonusTransactionKind.TOP_UP, 5.0, 15.0),
        (BonusTransactionKind.SPEND, -12.0, 3.0),
    ]


@pytest.mark.asyncio
async def test_active_order_flag(db_session):
    ledger = ClientRepository(db_session)
    client = await ledger.create_client(name="A", email="a@example.com")
    await ledger.set_has_active_order(client.id, True)
    assert (await ledger.get_by_id(client.id)).has_active_order is True


@pytest.mark.asyncio
async def test_duplicate_email_rejected(db_session):
    ledger = ClientRepository(db_session)
    await ledger.create_client(name="A", email="a@example.com")
    with pytest.raises(AlreadyRegistered):
        await ledger.create_client(name="B", email="a@example.com")


@pytest.mark.asyncio
async def test_phone_number_normalized(db_session):
    ledger = ClientRepository(db_session)
    client = await ledger.create_client(
        name="A", email="a@example.com", phone_number="+380-67-123-4567"
    )
    assert client.phone_number == "+380671234567"


@pytest.mark.asyncio
@pytest.mark.parametrize("phone", ["+abc", "123", "+3806712345678"])
async def test_malformed_phone_number_rejected(db_session, phone):
    with pytest.raises(InvalidPhoneNumber):
        await ClientRepository(db_session).create_client(
            name="A", email="a@example.com", phone_number=phone
        )
