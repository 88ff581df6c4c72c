"""End-to-end sync scenarios: two views, a shared backend, a pub/sub bus."""

from __future__ import annotations

import httpx
import pytest
import pytest_asyncio

from hcregister.config import BackendConfig
from hcregister.db.connection import close_db, init_db
from hcregister.ingestion.csv_import import parse_records_csv
from hcregister.models import User
from hcregister.register.operations import add_records, enter_quantity, update_field
from hcregister.sync.backend import BackendClient
from hcregister.sync.channel import EventBus
from hcregister.sync.session import SessionState, SyncSession
from hcregister.web.app import create_app

pytestmark = pytest.mark.integration


@pytest_asyncio.fixture
async def backend_transport():
    """ASGI transport to a fresh backend app (tables created, engine disposed)."""
    await init_db()
    yield httpx.ASGITransport(app=create_app())
    await close_db()


def _session(make_cache, name, config, bus, transport=None, notices=None) -> SyncSession:
    backend = None
    if transport is not None:
        backend = BackendClient(BackendConfig(url="http://backend/api/state"), transport=transport)
    return SyncSession(
        cache=make_cache(name),
        backend=backend,
        config=config,
        bus=bus,
        notify=notices.append if notices is not None else None,
    )


@pytest.mark.asyncio
async def test_two_views_edit_and_share_through_backend(make_cache, test_config, master, backend_transport):
    bus = EventBus()
    notices: list[str] = []
    alice = _session(make_cache, "alice", test_config, bus, backend_transport, notices)
    bob = _session(make_cache, "bob", test_config, bus, backend_transport)

    # empty backend ({}): both views keep their (empty) local state
    await alice.login(User(username="alice"))
    await bob.login(User(username="bob"))
    assert alice.state == bob.state == SessionState.READY
    assert alice.store.records == []

    batch = parse_records_csv("reference,surname\nHC-1,Smith\nHC-2,Jones\n", target_list="L1")
    await alice.apply(add_records(alice.store.records, batch, "batch.csv"))
    hc1 = alice.store.find_by_reference("HC-1")

    await bob.apply(enter_quantity(bob.store.records, hc1.id, "A1.1", "est", "2x3", master, by="bob"))
    await bob.apply(update_field(bob.store.records, hc1.id, "works_status", "Ongoing", by="bob"))

    # alice sees bob's edits through the channel, with totals recomputed
    seen = alice.store.get(hc1.id)
    assert seen.boq["A1.1"].est_val == 6.0
    assert seen.totals.est == 600.0
    assert seen.works_status.value == "Ongoing"
    assert [log.user for log in alice.store.activities] == ["bob", "bob", "alice"]

    assert await alice.save_to_backend()
    assert notices == ["Saved 2 records to shared backend."]
    await alice.logout()
    await bob.logout()

    # a third view starting from an empty cache gets the saved document
    carol = _session(make_cache, "carol", test_config, bus, backend_transport)
    await carol.login(User(username="carol"))
    assert carol.store.get(hc1.id).totals.est == 600.0
    assert len(carol.store.activities) == 3
    assert [r.reference for r in carol.cache.load_records()] == ["HC-1", "HC-2"]
    await carol.logout()


@pytest.mark.asyncio
async def test_unreachable_backend_falls_back_to_local_cache(make_cache, test_config, sample_records):
    def refuse(request):
        raise httpx.ConnectError("refused", request=request)

    view = _session(make_cache, "offline", test_config, EventBus(), httpx.MockTransport(refuse))
    view.cache.save_state(sample_records, [])

    await view.login(User(username="alice"))

    assert view.state == SessionState.READY
    assert view.store.records == sample_records
    await view.logout()
