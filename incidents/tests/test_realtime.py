import asyncio
import json
from types import SimpleNamespace

import pytest
from asgiref.sync import sync_to_async
from channels.layers import InMemoryChannelLayer, get_channel_layer
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator

from incidents.realtime.consumers import ReportFeedConsumer
from incidents.realtime.feed import ChangeEvent, ReportFeed, feed_group, identity_group
from incidents.realtime.routing import websocket_urlpatterns
from incidents.services.driver import DriverFlow
from incidents.services.hospital import HospitalDashboard
from incidents.session import IdentityContext
from incidents.store import ReportStore

GROUP = 'test-incident-reports'


def _report(rid, status='Pending'):
    return {'id': rid, 'status': status, 'location': 'Banashankari'}


async def _wait_for(predicate, timeout=1.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError('condition not met in time')
        await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_feed_yields_published_changes_in_order():
    layer = InMemoryChannelLayer()
    async with ReportFeed(layer, group=GROUP) as feed:
        await layer.group_send(GROUP, ChangeEvent('INSERT', _report('a')).as_message())
        await layer.group_send(GROUP, ChangeEvent('UPDATE', _report('a', 'Accepted')).as_message())
        first = await asyncio.wait_for(feed.__anext__(), 1)
        second = await asyncio.wait_for(feed.__anext__(), 1)
    assert first == ChangeEvent('INSERT', _report('a'))
    assert second.event == 'UPDATE' and second.report['status'] == 'Accepted'
    assert feed.closed


@pytest.mark.asyncio
async def test_unsubscribe_ends_pending_iteration_and_stops_delivery():
    layer = InMemoryChannelLayer()
    feed = await ReportFeed(layer, group=GROUP).open()
    waiter = asyncio.ensure_future(feed.__anext__())
    await asyncio.sleep(0.01)
    await feed.unsubscribe()
    with pytest.raises(StopAsyncIteration):
        await asyncio.wait_for(waiter, 1)
    # nothing reaches a discarded subscriber
    await layer.group_send(GROUP, ChangeEvent('INSERT', _report('late')).as_message())
    with pytest.raises(StopAsyncIteration):
        await feed.__anext__()


@pytest.mark.asyncio
async def test_dashboard_follow_merges_feed_until_closed():
    layer = InMemoryChannelLayer()
    dashboard = HospitalDashboard(ReportStore(layer))
    dashboard.reports = [_report('a'), _report('b')]
    feed = await ReportFeed(layer, group=GROUP).open()
    task = asyncio.ensure_future(dashboard.follow(feed))

    await layer.group_send(GROUP, ChangeEvent('UPDATE', _report('b', 'Rejected')).as_message())
    await layer.group_send(GROUP, ChangeEvent('INSERT', _report('d')).as_message())
    # duplicate delivery of the same update
    await layer.group_send(GROUP, ChangeEvent('UPDATE', _report('b', 'Rejected')).as_message())
    await _wait_for(lambda: len(dashboard.reports) == 3 and dashboard.reports[2]['status'] == 'Rejected')

    await feed.unsubscribe()
    await asyncio.wait_for(task, 1)
    await layer.group_send(GROUP, ChangeEvent('INSERT', _report('after-close')).as_message())
    await asyncio.sleep(0.02)
    assert [r['id'] for r in dashboard.reports] == ['d', 'a', 'b']


class _User(SimpleNamespace):
    is_authenticated = True


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
async def test_consumer_pushes_changes_to_hospitals():
    communicator = WebsocketCommunicator(URLRouter(websocket_urlpatterns), '/ws/reports/')
    communicator.scope['user'] = _User(pk=1, username='desk', email='desk@example.com', role='hospital')
    connected, _ = await communicator.connect()
    assert connected
    welcome = json.loads(await communicator.receive_from())
    assert welcome['type'] == 'welcome'

    layer = get_channel_layer()
    await layer.group_send(feed_group(), ChangeEvent('INSERT', _report('x')).as_message())
    pushed = json.loads(await communicator.receive_from())
    assert pushed == {'type': 'report', 'event': 'INSERT', 'new': _report('x')}

    await communicator.send_to(text_data='ping')
    assert json.loads(await communicator.receive_from()) == {'type': 'pong'}
    await communicator.disconnect()


@pytest.mark.asyncio
@pytest.mark.parametrize('user, code', [
    (SimpleNamespace(is_authenticated=False), 4001),
    (_User(pk=2, username='driver', email='driver@example.com', role='driver'), 4003),
])
async def test_consumer_refuses_non_hospital_users(user, code):
    communicator = WebsocketCommunicator(ReportFeedConsumer.as_asgi(), '/ws/reports/')
    communicator.scope['user'] = user
    connected, close_code = await communicator.connect()
    assert not connected
    assert close_code == code


@pytest.mark.asyncio
async def test_consumer_closes_when_its_account_signs_out():
    communicator = WebsocketCommunicator(URLRouter(websocket_urlpatterns), '/ws/reports/')
    communicator.scope['user'] = _User(pk=9, username='desk9', email='desk9@example.com', role='hospital')
    connected, _ = await communicator.connect()
    assert connected
    await communicator.receive_from()

    # another account signing out leaves this socket alone
    await get_channel_layer().group_send(identity_group(10), {'type': 'identity.cleared'})
    assert await communicator.receive_nothing(0.1)

    await get_channel_layer().group_send(identity_group(9), {'type': 'identity.cleared'})
    closed = await communicator.receive_output(1)
    assert closed['type'] == 'websocket.close'
    assert closed['code'] == 4001


@pytest.mark.asyncio
async def test_cancelled_feed_still_leaves_the_group():
    layer = InMemoryChannelLayer()
    feed = await ReportFeed(layer, group=GROUP).open()
    feed.cancel()
    with pytest.raises(StopAsyncIteration):
        await asyncio.wait_for(feed.__anext__(), 1)
    assert layer.groups.get(GROUP)
    await feed.unsubscribe()
    assert not layer.groups.get(GROUP)


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
async def test_dashboard_run_follows_store_writes_until_closed(driver_identity, hospital_identity,
                                                                banashankari_form):
    layer = InMemoryChannelLayer()
    store = ReportStore(layer)
    first = await sync_to_async(DriverFlow(store, driver_identity).submit)(banashankari_form)

    dashboard = HospitalDashboard(store, hospital_identity)
    task = asyncio.ensure_future(dashboard.run())
    await _wait_for(lambda: [r['id'] for r in dashboard.reports] == [first['id']])

    second = await sync_to_async(DriverFlow(store, driver_identity).submit)(banashankari_form)
    await _wait_for(lambda: [r['id'] for r in dashboard.reports] == [second['id'], first['id']])

    await sync_to_async(store.update_status)(first['id'], 'Accepted')
    await _wait_for(lambda: dashboard.get(first['id'])['status'] == 'Accepted')
    assert [r['id'] for r in dashboard.reports] == [second['id'], first['id']]

    await dashboard.close()
    await asyncio.wait_for(task, 1)
    assert not layer.groups.get(feed_group())


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
async def test_write_landing_during_initial_fetch_is_merged_afterwards(driver_identity, hospital_identity,
                                                                       banashankari_form):
    layer = InMemoryChannelLayer()
    store = ReportStore(layer)
    late = {}
    fetch = store.query_all

    def fetch_then_write():
        rows = fetch()
        # committed after the rows were read, before the dashboard holds them
        late.update(DriverFlow(store, driver_identity).submit(banashankari_form))
        return rows

    store.query_all = fetch_then_write
    dashboard = HospitalDashboard(store, hospital_identity)
    task = asyncio.ensure_future(dashboard.run())
    await _wait_for(lambda: late and dashboard.get(late['id']) is not None)
    assert dashboard.reports[0]['id'] == late['id']

    await dashboard.close()
    await asyncio.wait_for(task, 1)


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
async def test_sign_out_ends_a_running_dashboard(driver_identity, hospital_identity, banashankari_form):
    layer = InMemoryChannelLayer()
    store = ReportStore(layer)
    await sync_to_async(DriverFlow(store, driver_identity).submit)(banashankari_form)

    session = IdentityContext(hospital_identity)
    dashboard = HospitalDashboard(store, session)
    task = asyncio.ensure_future(dashboard.run())
    await _wait_for(lambda: len(dashboard.reports) == 1)

    session.clear()
    await asyncio.wait_for(task, 1)
    assert dashboard.reports == []
    assert not layer.groups.get(feed_group())
