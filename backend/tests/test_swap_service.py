"""
ReWear Backend — Swap Service Tests
=====================================

What:  Proposal validation, the swap lifecycle and acceptance settlement.
How:   Real stores over an in-memory SQLite session; every assertion on
       balances re-reads the rows after the service committed.

Test Strategy:
    ✅ Proposal: not found, unavailable, self-swap, insufficient points,
       item swap without an offered item, foreign offered item
    ✅ Decision: only the owner decides, one-shot acceptance, terminal states
    ✅ Settlement: point transfer, counters, availability, competing swaps
    ✅ Rollback: a failed re-validation leaves every store untouched
    ✅ Concurrency: racing acceptances in separate sessions settle once
    ✅ Database failures surface as DatabaseError
"""

import asyncio
from unittest.mock import ANY, AsyncMock, patch
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError

from conftest import principal_for
from rewear.exceptions import (
    DatabaseError,
    ForbiddenError,
    InsufficientBalanceError,
    InvalidStateError,
    NotFoundError,
    SelfSwapForbiddenError,
    UnavailableError,
    ValidationError,
)
from rewear.models.swap import SwapStatus
from rewear.services.swap_service import ALLOWED_TRANSITIONS, SwapService
from rewear.stores import CatalogStore, IdentityStore, SwapLedger


@pytest.fixture
def service():
    return SwapService()


async def _reload_user(db_session, user):
    await db_session.refresh(user)
    return user


class TestProposeSwap:
    """Validation performed when a swap request is created."""

    @pytest.mark.asyncio
    async def test_points_swap_recorded_as_pending(self, service, db_session, make_user, make_item):
        alice = await make_user("Alice", points=100)
        bob = await make_user("Bob", points=200)
        jacket = await make_item(bob, "Denim Jacket", points_value=75)

        swap = await service.propose_swap(db_session, principal_for(alice), jacket.id, use_points=True)

        assert swap.status == SwapStatus.PENDING.value
        assert swap.points_offered == 75
        assert swap.requester_id == alice.id
        assert swap.requester_name == "Alice"
        assert swap.owner_id == bob.id
        assert swap.item_title == "Denim Jacket"

    @pytest.mark.asyncio
    async def test_proposal_does_not_reserve_points(self, service, db_session, make_user, make_item):
        alice = await make_user("Alice", points=100)
        bob = await make_user("Bob")
        jacket = await make_item(bob, points_value=75)

        await service.propose_swap(db_session, principal_for(alice), jacket.id, use_points=True)

        assert (await _reload_user(db_session, alice)).points == 100

    @pytest.mark.asyncio
    async def test_explicit_points_offer_overrides_valuation(self, service, db_session, make_user, make_item):
        alice = await make_user("Alice", points=100)
        bob = await make_user("Bob")
        jacket = await make_item(bob, points_value=75)

        swap = await service.propose_swap(
            db_session, principal_for(alice), jacket.id, use_points=True, points_offered=60
        )

        assert swap.points_offered == 60

    @pytest.mark.asyncio
    async def test_unknown_item_not_found(self, service, db_session, make_user):
        alice = await make_user("Alice")

        with pytest.raises(NotFoundError) as exc_info:
            await service.propose_swap(db_session, principal_for(alice), uuid4(), use_points=True)

        assert exc_info.value.error_code == "item_not_found"

    @pytest.mark.asyncio
    async def test_unavailable_item_rejected(self, service, db_session, make_user, make_item):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        jacket = await make_item(bob, is_available=False)

        with pytest.raises(UnavailableError):
            await service.propose_swap(db_session, principal_for(alice), jacket.id, use_points=True)

    @pytest.mark.asyncio
    async def test_own_item_rejected(self, service, db_session, make_user, make_item):
        bob = await make_user("Bob", points=500)
        jacket = await make_item(bob)

        with pytest.raises(SelfSwapForbiddenError) as exc_info:
            await service.propose_swap(db_session, principal_for(bob), jacket.id, use_points=True)

        assert exc_info.value.error_code == "self_swap_forbidden"
        assert await SwapLedger(db_session).count() == 0

    @pytest.mark.asyncio
    async def test_insufficient_points_rejected(self, service, db_session, make_user, make_item):
        alice = await make_user("Alice", points=40)
        bob = await make_user("Bob")
        jacket = await make_item(bob, points_value=75)

        with pytest.raises(InsufficientBalanceError) as exc_info:
            await service.propose_swap(db_session, principal_for(alice), jacket.id, use_points=True)

        assert exc_info.value.error_code == "insufficient_points"
        assert exc_info.value.required == 75
        assert exc_info.value.available == 40
        assert await SwapLedger(db_session).count() == 0

    @pytest.mark.asyncio
    async def test_balance_ignored_for_item_swaps(self, service, db_session, make_user, make_item):
        alice = await make_user("Alice", points=0)
        bob = await make_user("Bob")
        jacket = await make_item(bob, points_value=75)
        scarf = await make_item(alice, "Wool Scarf")

        swap = await service.propose_swap(
            db_session, principal_for(alice), jacket.id, offered_item_id=scarf.id
        )

        assert swap.use_points is False
        assert swap.offered_item_id == scarf.id
        assert swap.offered_item_title == "Wool Scarf"

    @pytest.mark.asyncio
    async def test_item_swap_without_offered_item_rejected(self, service, db_session, make_user, make_item):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        jacket = await make_item(bob)

        with pytest.raises(InvalidStateError):
            await service.propose_swap(db_session, principal_for(alice), jacket.id, use_points=False)

    @pytest.mark.asyncio
    async def test_offering_someone_elses_item_rejected(self, service, db_session, make_user, make_item):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        carol = await make_user("Carol")
        jacket = await make_item(bob)
        carols_boots = await make_item(carol, "Boots")

        with pytest.raises(ForbiddenError):
            await service.propose_swap(
                db_session, principal_for(alice), jacket.id, offered_item_id=carols_boots.id
            )

    @pytest.mark.asyncio
    async def test_unavailable_offered_item_rejected(self, service, db_session, make_user, make_item):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        jacket = await make_item(bob)
        scarf = await make_item(alice, "Wool Scarf", is_available=False)

        with pytest.raises(UnavailableError):
            await service.propose_swap(
                db_session, principal_for(alice), jacket.id, offered_item_id=scarf.id
            )


class TestDecideSwap:
    """Authorization and the lifecycle transition table."""

    @pytest.mark.asyncio
    async def test_unknown_swap_not_found(self, service, db_session, make_user):
        bob = await make_user("Bob")

        with pytest.raises(NotFoundError) as exc_info:
            await service.decide_swap(db_session, uuid4(), principal_for(bob), "accepted")

        assert exc_info.value.error_code == "swap_not_found"

    @pytest.mark.asyncio
    async def test_unknown_status_rejected(self, service, db_session, make_user, make_item):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        jacket = await make_item(bob)
        swap = await service.propose_swap(db_session, principal_for(alice), jacket.id, use_points=True)

        with pytest.raises(ValidationError):
            await service.decide_swap(db_session, swap.id, principal_for(bob), "approved")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["accepted", "declined", "completed", "cancelled"])
    async def test_non_owner_cannot_decide(self, service, db_session, make_user, make_item, status):
        alice = await make_user("Alice", points=100)
        bob = await make_user("Bob")
        jacket = await make_item(bob, points_value=75)
        swap = await service.propose_swap(db_session, principal_for(alice), jacket.id, use_points=True)
        await db_session.commit()

        with pytest.raises(ForbiddenError) as exc_info:
            await service.decide_swap(db_session, swap.id, principal_for(alice), status)

        assert exc_info.value.error_code == "not_authorized"
        await db_session.refresh(swap)
        assert swap.status == SwapStatus.PENDING.value
        assert (await _reload_user(db_session, alice)).points == 100

    @pytest.mark.asyncio
    async def test_admin_flag_does_not_grant_decision(self, service, db_session, make_user, make_item):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        admin = await make_user("Admin", is_admin=True)
        jacket = await make_item(bob)
        swap = await service.propose_swap(db_session, principal_for(alice), jacket.id, use_points=True)

        with pytest.raises(ForbiddenError):
            await service.decide_swap(db_session, swap.id, principal_for(admin), "declined")

    @pytest.mark.asyncio
    async def test_decline_moves_nothing(self, service, db_session, make_user, make_item):
        alice = await make_user("Alice", points=100)
        bob = await make_user("Bob", points=200)
        jacket = await make_item(bob, points_value=75)
        swap = await service.propose_swap(db_session, principal_for(alice), jacket.id, use_points=True)

        decided = await service.decide_swap(db_session, swap.id, principal_for(bob), "declined")

        assert decided.status == SwapStatus.DECLINED.value
        assert (await _reload_user(db_session, alice)).points == 100
        assert (await _reload_user(db_session, bob)).points == 200
        await db_session.refresh(jacket)
        assert jacket.is_available is True

    @pytest.mark.asyncio
    async def test_accept_is_one_shot(self, service, db_session, make_user, make_item):
        alice = await make_user("Alice", points=100)
        bob = await make_user("Bob", points=200)
        jacket = await make_item(bob, points_value=75)
        swap = await service.propose_swap(db_session, principal_for(alice), jacket.id, use_points=True)
        await service.decide_swap(db_session, swap.id, principal_for(bob), "accepted")

        with pytest.raises(InvalidStateError):
            await service.decide_swap(db_session, swap.id, principal_for(bob), "accepted")

        assert (await _reload_user(db_session, alice)).points == 25
        assert (await _reload_user(db_session, bob)).points == 275

    @pytest.mark.asyncio
    async def test_declined_swap_cannot_be_accepted(self, service, db_session, make_user, make_item):
        alice = await make_user("Alice", points=100)
        bob = await make_user("Bob")
        jacket = await make_item(bob, points_value=75)
        swap = await service.propose_swap(db_session, principal_for(alice), jacket.id, use_points=True)
        await service.decide_swap(db_session, swap.id, principal_for(bob), "declined")

        with pytest.raises(InvalidStateError):
            await service.decide_swap(db_session, swap.id, principal_for(bob), "accepted")

        assert (await _reload_user(db_session, alice)).points == 100

    @pytest.mark.asyncio
    async def test_accepted_swap_can_be_completed(self, service, db_session, make_user, make_item):
        alice = await make_user("Alice", points=100)
        bob = await make_user("Bob", points=200)
        jacket = await make_item(bob, points_value=75)
        swap = await service.propose_swap(db_session, principal_for(alice), jacket.id, use_points=True)
        await service.decide_swap(db_session, swap.id, principal_for(bob), "accepted")

        completed = await service.decide_swap(db_session, swap.id, principal_for(bob), "completed")

        assert completed.status == SwapStatus.COMPLETED.value
        # Completion moves no further points
        assert (await _reload_user(db_session, alice)).points == 25
        assert (await _reload_user(db_session, bob)).points == 275

    @pytest.mark.asyncio
    async def test_pending_swap_cannot_be_completed(self, service, db_session, make_user, make_item):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        jacket = await make_item(bob)
        swap = await service.propose_swap(db_session, principal_for(alice), jacket.id, use_points=True)

        with pytest.raises(InvalidStateError):
            await service.decide_swap(db_session, swap.id, principal_for(bob), "completed")

    def test_terminal_states_have_no_exits(self):
        for status in (SwapStatus.DECLINED, SwapStatus.COMPLETED, SwapStatus.CANCELLED):
            assert status not in ALLOWED_TRANSITIONS
        assert SwapStatus.ACCEPTED not in ALLOWED_TRANSITIONS[SwapStatus.ACCEPTED]


class TestSettlement:
    """Cross-store effects of accepting a swap."""

    @pytest.mark.asyncio
    async def test_points_swap_settlement(self, service, db_session, make_user, make_item):
        """A=100, B=200, X worth 75 → A=25 (requested 75 of 100), B=275."""
        alice = await make_user("Alice", points=100)
        bob = await make_user("Bob", points=200)
        jacket = await make_item(bob, "Denim Jacket", points_value=75)
        swap = await service.propose_swap(db_session, principal_for(alice), jacket.id, use_points=True)

        accepted = await service.decide_swap(db_session, swap.id, principal_for(bob), "accepted")

        assert accepted.status == SwapStatus.ACCEPTED.value
        alice = await _reload_user(db_session, alice)
        bob = await _reload_user(db_session, bob)
        assert alice.points == 25
        assert bob.points == 275
        assert alice.swap_count == 1
        assert bob.swap_count == 1
        await db_session.refresh(jacket)
        assert jacket.is_available is False

    @pytest.mark.asyncio
    async def test_owner_with_fewer_points_receives_payment(self, service, db_session, make_user, make_item):
        """A=100 lists X worth 75; B=200 pays with points; A accepts → A=175, B=125."""
        a = await make_user("Ana", points=100)
        b = await make_user("Ben", points=200)
        x = await make_item(a, "Denim Jacket", points_value=75)
        swap = await service.propose_swap(db_session, principal_for(b), x.id, use_points=True)

        await service.decide_swap(db_session, swap.id, principal_for(a), "accepted")

        a = await _reload_user(db_session, a)
        b = await _reload_user(db_session, b)
        assert (a.points, a.swap_count) == (175, 1)
        assert (b.points, b.swap_count) == (125, 1)
        assert (await CatalogStore(db_session).get(x.id)).is_available is False

    @pytest.mark.asyncio
    async def test_points_are_conserved(self, service, db_session, make_user, make_item):
        alice = await make_user("Alice", points=300)
        bob = await make_user("Bob", points=10)
        carol = await make_user("Carol", points=55)
        jacket = await make_item(bob, points_value=120)
        boots = await make_item(carol, "Boots", points_value=45)

        first = await service.propose_swap(db_session, principal_for(alice), jacket.id, use_points=True)
        second = await service.propose_swap(db_session, principal_for(alice), boots.id, use_points=True)
        await service.decide_swap(db_session, first.id, principal_for(bob), "accepted")
        await service.decide_swap(db_session, second.id, principal_for(carol), "accepted")

        balances = [(await _reload_user(db_session, u)).points for u in (alice, bob, carol)]
        assert sum(balances) == 365
        assert balances == [135, 130, 100]

    @pytest.mark.asyncio
    async def test_item_swap_moves_no_points(self, service, db_session, make_user, make_item):
        alice = await make_user("Alice", points=100)
        bob = await make_user("Bob", points=200)
        jacket = await make_item(bob, points_value=75)
        scarf = await make_item(alice, "Wool Scarf")
        swap = await service.propose_swap(
            db_session, principal_for(alice), jacket.id, offered_item_id=scarf.id
        )

        await service.decide_swap(db_session, swap.id, principal_for(bob), "accepted")

        alice = await _reload_user(db_session, alice)
        bob = await _reload_user(db_session, bob)
        assert (alice.points, bob.points) == (100, 200)
        assert (alice.swap_count, bob.swap_count) == (0, 0)
        await db_session.refresh(jacket)
        await db_session.refresh(scarf)
        assert jacket.is_available is False
        assert scarf.is_available is False

    @pytest.mark.asyncio
    async def test_competing_requests_declined(self, service, db_session, make_user, make_item):
        alice = await make_user("Alice", points=100)
        carol = await make_user("Carol", points=100)
        bob = await make_user("Bob")
        jacket = await make_item(bob, points_value=75)
        hat = await make_item(bob, "Sun Hat", points_value=20)

        winner = await service.propose_swap(db_session, principal_for(alice), jacket.id, use_points=True)
        loser = await service.propose_swap(db_session, principal_for(carol), jacket.id, use_points=True)
        unrelated = await service.propose_swap(db_session, principal_for(carol), hat.id, use_points=True)

        await service.decide_swap(db_session, winner.id, principal_for(bob), "accepted")

        ledger = SwapLedger(db_session)
        assert (await ledger.get(loser.id)).status == SwapStatus.DECLINED.value
        assert (await ledger.get(unrelated.id)).status == SwapStatus.PENDING.value
        assert (await _reload_user(db_session, carol)).points == 100

    @pytest.mark.asyncio
    async def test_swaps_offering_the_taken_item_declined(self, service, db_session, make_user, make_item):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        carol = await make_user("Carol")
        jacket = await make_item(bob)
        boots = await make_item(carol, "Boots")
        scarf = await make_item(alice, "Wool Scarf")

        # Alice offers the scarf twice
        for_jacket = await service.propose_swap(
            db_session, principal_for(alice), jacket.id, offered_item_id=scarf.id
        )
        for_boots = await service.propose_swap(
            db_session, principal_for(alice), boots.id, offered_item_id=scarf.id
        )

        await service.decide_swap(db_session, for_jacket.id, principal_for(bob), "accepted")

        assert (await SwapLedger(db_session).get(for_boots.id)).status == SwapStatus.DECLINED.value
        with pytest.raises(InvalidStateError):
            await service.decide_swap(db_session, for_boots.id, principal_for(carol), "accepted")

    @pytest.mark.asyncio
    async def test_offered_item_gone_while_pending_blocks_acceptance(
        self, service, db_session, make_user, make_item
    ):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        jacket = await make_item(bob)
        scarf = await make_item(alice, "Wool Scarf")
        swap = await service.propose_swap(
            db_session, principal_for(alice), jacket.id, offered_item_id=scarf.id
        )
        # Alice withdraws the scarf before Bob answers
        await CatalogStore(db_session).update(scarf, is_available=False)
        await db_session.commit()
        swap_id, jacket_id = swap.id, jacket.id
        bob_principal = principal_for(bob)

        with pytest.raises(UnavailableError) as exc_info:
            await service.decide_swap(db_session, swap_id, bob_principal, "accepted")

        assert exc_info.value.message == "Offered item is not available"
        assert (await SwapLedger(db_session).get(swap_id)).status == SwapStatus.PENDING.value
        assert (await CatalogStore(db_session).get(jacket_id)).is_available is True

    @pytest.mark.asyncio
    async def test_other_items_untouched(self, service, db_session, make_user, make_item):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        jacket = await make_item(bob, points_value=75)
        hat = await make_item(bob, "Sun Hat")
        swap = await service.propose_swap(db_session, principal_for(alice), jacket.id, use_points=True)

        await service.decide_swap(db_session, swap.id, principal_for(bob), "accepted")

        await db_session.refresh(hat)
        assert hat.is_available is True

    @pytest.mark.asyncio
    async def test_balance_rechecked_on_acceptance(self, service, db_session, make_user, make_item):
        alice = await make_user("Alice", points=100)
        bob = await make_user("Bob", points=200)
        carol = await make_user("Carol", points=0)
        jacket = await make_item(bob, points_value=75)
        boots = await make_item(carol, "Boots", points_value=60)

        for_jacket = await service.propose_swap(db_session, principal_for(alice), jacket.id, use_points=True)
        for_boots = await service.propose_swap(db_session, principal_for(alice), boots.id, use_points=True)
        await service.decide_swap(db_session, for_jacket.id, principal_for(bob), "accepted")
        # The failed decision rolls back and expires every loaded row
        alice_id, carol_id, boots_id, swap_id = alice.id, carol.id, boots.id, for_boots.id

        # 25 points left, 60 needed
        with pytest.raises(InsufficientBalanceError):
            await service.decide_swap(db_session, swap_id, principal_for(carol), "accepted")

        identity = IdentityStore(db_session)
        assert (await identity.get(alice_id)).points == 25
        assert (await identity.get(carol_id)).points == 0
        assert (await SwapLedger(db_session).get(swap_id)).status == SwapStatus.PENDING.value
        assert (await CatalogStore(db_session).get(boots_id)).is_available is True

    @pytest.mark.asyncio
    async def test_withdrawn_item_blocks_acceptance(self, service, db_session, make_user, make_item):
        alice = await make_user("Alice", points=100)
        bob = await make_user("Bob", points=200)
        jacket = await make_item(bob, points_value=75)
        swap = await service.propose_swap(db_session, principal_for(alice), jacket.id, use_points=True)
        await CatalogStore(db_session).update(jacket, is_available=False)
        await db_session.commit()
        alice_id, bob_id, swap_id = alice.id, bob.id, swap.id

        with pytest.raises(UnavailableError):
            await service.decide_swap(db_session, swap_id, principal_for(bob), "accepted")

        identity = IdentityStore(db_session)
        assert (await identity.get(alice_id)).points == 100
        assert (await identity.get(bob_id)).points == 200
        assert (await SwapLedger(db_session).get(swap_id)).status == SwapStatus.PENDING.value

    @pytest.mark.asyncio
    async def test_deleted_item_blocks_acceptance(self, service, db_session, make_user, make_item):
        alice = await make_user("Alice", points=100)
        bob = await make_user("Bob")
        jacket = await make_item(bob, points_value=75)
        swap = await service.propose_swap(db_session, principal_for(alice), jacket.id, use_points=True)
        await CatalogStore(db_session).delete(jacket)
        await db_session.commit()
        alice_id = alice.id

        with pytest.raises(NotFoundError):
            await service.decide_swap(db_session, swap.id, principal_for(bob), "accepted")

        assert (await IdentityStore(db_session).get(alice_id)).points == 100


class TestSwapHistory:

    @pytest.mark.asyncio
    async def test_lists_requested_and_received(self, service, db_session, make_user, make_item):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        carol = await make_user("Carol")
        jacket = await make_item(bob)
        boots = await make_item(carol, "Boots")

        outgoing = await service.propose_swap(db_session, principal_for(alice), jacket.id, use_points=True)
        await service.propose_swap(db_session, principal_for(alice), boots.id, use_points=True)
        incoming_only = await service.propose_swap(db_session, principal_for(carol), jacket.id, use_points=True)

        bobs = await service.list_swaps_for_user(db_session, principal_for(bob))
        alices = await service.list_swaps_for_user(db_session, principal_for(alice))

        assert [s.id for s in bobs] == [outgoing.id, incoming_only.id]
        assert len(alices) == 2


class TestConcurrentDecisions:
    """Decisions racing in separate sessions, the way two requests would."""

    @pytest_asyncio.fixture
    async def contested_jacket(self, service, db_session, make_user, make_item):
        alice = await make_user("Alice", points=100)
        carol = await make_user("Carol", points=100)
        bob = await make_user("Bob", points=0)
        jacket = await make_item(bob, points_value=75)
        first = await service.propose_swap(db_session, principal_for(alice), jacket.id, use_points=True)
        second = await service.propose_swap(db_session, principal_for(carol), jacket.id, use_points=True)
        await db_session.commit()
        return {
            "owner": principal_for(bob),
            "user_ids": (alice.id, carol.id, bob.id),
            "jacket_id": jacket.id,
            "swap_ids": (first.id, second.id),
        }

    @staticmethod
    async def _accept_concurrently(service, session_factory, owner, swap_ids):
        async def accept(swap_id):
            async with session_factory() as session:
                return await service.decide_swap(session, swap_id, owner, "accepted")

        results = await asyncio.gather(*(accept(s) for s in swap_ids), return_exceptions=True)
        accepted = [r for r in results if not isinstance(r, BaseException)]
        failed = [r for r in results if isinstance(r, BaseException)]
        return accepted, failed

    @pytest.mark.asyncio
    async def test_competing_swaps_accepted_at_once(self, service, session_factory, contested_jacket):
        accepted, failed = await self._accept_concurrently(
            service, session_factory, contested_jacket["owner"], contested_jacket["swap_ids"]
        )

        assert len(accepted) == 1
        assert accepted[0].status == SwapStatus.ACCEPTED.value
        assert len(failed) == 1
        assert isinstance(failed[0], InvalidStateError)

        async with session_factory() as check:
            identity = IdentityStore(check)
            alice_id, carol_id, bob_id = contested_jacket["user_ids"]
            balances = [(await identity.get(u)).points for u in (alice_id, carol_id)]
            bob = await identity.get(bob_id)
            assert sorted(balances) == [25, 100]
            assert bob.points == 75
            assert bob.swap_count == 1
            assert sum(balances) + bob.points == 200
            jacket = await CatalogStore(check).get(contested_jacket["jacket_id"])
            assert jacket.is_available is False

    @pytest.mark.asyncio
    async def test_same_swap_accepted_twice_at_once(self, service, session_factory, contested_jacket):
        first_id, second_id = contested_jacket["swap_ids"]

        accepted, failed = await self._accept_concurrently(
            service, session_factory, contested_jacket["owner"], (first_id, first_id)
        )

        assert len(accepted) == 1
        assert len(failed) == 1
        assert isinstance(failed[0], InvalidStateError)

        async with session_factory() as check:
            alice_id, _, bob_id = contested_jacket["user_ids"]
            identity = IdentityStore(check)
            assert (await identity.get(alice_id)).points == 25
            assert (await identity.get(bob_id)).points == 75
            assert (await SwapLedger(check).get(second_id)).status == SwapStatus.DECLINED.value


class TestProposalAgainstSettlement:

    @pytest.mark.asyncio
    async def test_proposal_after_acceptance_rejected(self, service, db_session, make_user, make_item):
        alice = await make_user("Alice", points=100)
        carol = await make_user("Carol", points=100)
        bob = await make_user("Bob")
        jacket = await make_item(bob, points_value=75)
        swap = await service.propose_swap(db_session, principal_for(alice), jacket.id, use_points=True)
        await service.decide_swap(db_session, swap.id, principal_for(bob), "accepted")

        with pytest.raises(UnavailableError):
            await service.propose_swap(db_session, principal_for(carol), jacket.id, use_points=True)

        assert await SwapLedger(db_session).count() == 1

    @pytest.mark.asyncio
    async def test_proposal_locks_item_rows(self, service, db_session, make_user, make_item):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        jacket = await make_item(bob)
        scarf = await make_item(alice, "Wool Scarf")

        with patch.object(CatalogStore, "get", autospec=True, side_effect=CatalogStore.get) as get:
            await service.propose_swap(
                db_session, principal_for(alice), jacket.id, offered_item_id=scarf.id
            )

        get.assert_any_call(ANY, jacket.id, for_update=True)
        get.assert_any_call(ANY, scarf.id, for_update=True)


class TestDatabaseFailures:

    @pytest.mark.asyncio
    async def test_failed_insert_surfaces_as_database_error(self, service, db_session, make_user, make_item):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        jacket = await make_item(bob)
        failure = OperationalError("INSERT INTO swap_requests", {}, Exception("disk I/O error"))

        with patch.object(SwapLedger, "insert", new=AsyncMock(side_effect=failure)):
            with pytest.raises(DatabaseError) as exc_info:
                await service.propose_swap(db_session, principal_for(alice), jacket.id, use_points=True)

        assert exc_info.value.error_code == "server_error"
        assert "disk I/O" not in exc_info.value.message
