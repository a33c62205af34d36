from __future__ import annotations

import pytest

from matrimony.errors import ConflictError, InvalidArgumentError, NotFoundError
from matrimony.services.wallet_service import WalletService


@pytest.mark.asyncio
async def test_unlock_debits_once(person_repo, person_factory) -> None:
    service = WalletService(person_repo, unlock_cost=10)
    viewer = await person_factory(name="Viewer", gender="male", age=30, balance=15)
    target = await person_factory(name="Target", gender="female", age=27)

    result = await service.unlock(viewer.person_id, target.person_id)
    assert result.already_unlocked is False
    assert result.coins_used == 10
    assert result.balance == 5

    stored = await person_repo.get_by_id(viewer.id)
    assert stored.wallet.balance == 5
    assert [entry.counterparty_id for entry in stored.wallet.profiles_unlocked] == [target.person_id]
    debit = stored.wallet.transactions[-1]
    assert (debit.type, debit.amount, debit.related_user_id) == ("debit", 10, target.person_id)

    again = await service.unlock(viewer.person_id, target.person_id)
    assert again.already_unlocked is True
    assert again.coins_used == 0
    assert again.balance == 5
    assert len((await person_repo.get_by_id(viewer.id)).wallet.transactions) == 1
    assert await service.has_unlocked(viewer.person_id, target.person_id) is True


@pytest.mark.asyncio
async def test_unlock_with_insufficient_balance(person_repo, person_factory) -> None:
    service = WalletService(person_repo, unlock_cost=10)
    viewer = await person_factory(name="Viewer", gender="male", age=30, balance=9)
    target = await person_factory(name="Target", gender="female", age=27)

    with pytest.raises(ConflictError) as excinfo:
        await service.unlock(viewer.person_id, target.person_id)
    assert excinfo.value.payload == {"currentBalance": 9, "required": 10}

    stored = await person_repo.get_by_id(viewer.id)
    assert stored.wallet.balance == 9
    assert stored.wallet.transactions == []
    assert stored.wallet.profiles_unlocked == []


@pytest.mark.asyncio
async def test_unlock_argument_errors(person_repo, person_factory) -> None:
    service = WalletService(person_repo, unlock_cost=10)
    viewer = await person_factory(name="Viewer", gender="male", age=30, balance=50)

    with pytest.raises(InvalidArgumentError):
        await service.unlock(viewer.person_id, viewer.person_id)
    with pytest.raises(InvalidArgumentError):
        await service.unlock(viewer.person_id, "")
    with pytest.raises(NotFoundError):
        await service.unlock(viewer.person_id, "64b7f0c2a1b2c3d4e5f60718")
    assert await service.balance(viewer.person_id) == 50


@pytest.mark.asyncio
async def test_credit_and_transaction_history(person_repo, person_factory) -> None:
    service = WalletService(person_repo, unlock_cost=10)
    viewer = await person_factory(name="Viewer", gender="male", age=30)
    first = await person_factory(name="First", gender="female", age=27)
    second = await person_factory(name="Second", gender="female", age=28)

    credited = await service.credit(viewer.person_id, 25, "Welcome bonus")
    assert credited.credits_added == 25
    assert credited.balance == 25

    await service.unlock(viewer.person_id, first.person_id)
    await service.unlock(viewer.person_id, second.person_id)
    assert await service.balance(viewer.person_id) == 5

    page = await service.transactions(viewer.person_id, limit=2)
    assert page.total == 3
    assert len(page.transactions) == 2
    created = [t.created_at for t in page.transactions]
    assert created == sorted(created, reverse=True)
    assert all(t.type == "debit" for t in page.transactions)
    assert page.transactions[0].related_user is not None

    rest = await service.transactions(viewer.person_id, limit=2, skip=2)
    assert [t.type for t in rest.transactions] == ["credit"]

    unlocked = await service.unlocked_profiles(viewer.person_id)
    names = {view.user.basic_info.name for view in unlocked.unlocked_profiles}
    assert names == {"First", "Second"}


@pytest.mark.asyncio
async def test_credit_validation(person_repo, person_factory) -> None:
    service = WalletService(person_repo, unlock_cost=10)
    viewer = await person_factory(name="Viewer", gender="male", age=30)

    for amount in (0, -5, True, "10"):
        with pytest.raises(InvalidArgumentError):
            await service.credit(viewer.person_id, amount)
    with pytest.raises(NotFoundError):
        await service.credit("64b7f0c2a1b2c3d4e5f60718", 10)
    with pytest.raises(InvalidArgumentError):
        await service.transactions(viewer.person_id, limit=0)
    with pytest.raises(InvalidArgumentError):
        await service.transactions(viewer.person_id, skip=-1)


@pytest.mark.asyncio
async def test_unlock_cost_must_be_positive(person_repo) -> None:
    with pytest.raises(ValueError):
        WalletService(person_repo, unlock_cost=0)


@pytest.mark.asyncio
async def test_unlock_race_lost_to_concurrent_unlock(person_repo, person_factory, monkeypatch) -> None:
    service = WalletService(person_repo, unlock_cost=10)
    viewer = await person_factory(name="Viewer", gender="male", age=30, balance=15)
    target = await person_factory(name="Target", gender="female", age=27)
    original = person_repo.apply_unlock

    async def unlocked_elsewhere_first(person_id, **kwargs):
        await person_repo.collection.update_one(
            {"_id": person_id},
            {"$push": {"wallet.profilesUnlocked": {"counterpartyId": target.person_id, "unlockedAt": 1}}},
        )
        return await original(person_id, **kwargs)

    monkeypatch.setattr(person_repo, "apply_unlock", unlocked_elsewhere_first)

    result = await service.unlock(viewer.person_id, target.person_id)
    assert result.already_unlocked is True
    assert result.coins_used == 0
    assert result.balance == 15

    stored = await person_repo.get_by_id(viewer.id)
    assert stored.wallet.balance == 15
    assert stored.wallet.transactions == []


@pytest.mark.asyncio
async def test_unlock_race_lost_to_drained_balance(person_repo, person_factory, monkeypatch) -> None:
    service = WalletService(person_repo, unlock_cost=10)
    viewer = await person_factory(name="Viewer", gender="male", age=30, balance=15)
    target = await person_factory(name="Target", gender="female", age=27)
    original = person_repo.apply_unlock

    async def spent_elsewhere_first(person_id, **kwargs):
        await person_repo.collection.update_one({"_id": person_id}, {"$set": {"wallet.balance": 3}})
        return await original(person_id, **kwargs)

    monkeypatch.setattr(person_repo, "apply_unlock", spent_elsewhere_first)

    with pytest.raises(ConflictError) as excinfo:
        await service.unlock(viewer.person_id, target.person_id)
    assert excinfo.value.payload == {"currentBalance": 3, "required": 10}

    stored = await person_repo.get_by_id(viewer.id)
    assert stored.wallet.profiles_unlocked == []
    assert stored.wallet.transactions == []
