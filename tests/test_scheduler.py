import asyncio
from datetime import timedelta

import pytest

from conftest import minutes_ago, rss_document
from rss_live.core import FeedReconciler
from rss_live.scheduler import Poller


def _entry(n):
    return (f"Story {n}", f"https://news.example/{n}", minutes_ago(n))


@pytest.mark.asyncio
async def test_run_once_loads_then_stages(settings, feeds, clock, client_factory):
    url = settings.sources[0].url
    feeds[url] = rss_document([_entry(3)])

    async with client_factory() as client:
        poller = Poller(FeedReconciler(settings, client=client, clock=clock))
        first = await poller.run_once()
        feeds[url] = rss_document([_entry(1), _entry(3)])
        second = await poller.run_once()

    assert first.first_load and not second.first_load
    assert poller.reconciler.pending_count == 1
    assert poller.cycles == 2


@pytest.mark.asyncio
async def test_auto_commit(settings, feeds, clock, client_factory):
    url = settings.sources[0].url
    feeds[url] = rss_document([_entry(3)])

    async with client_factory() as client:
        poller = Poller(FeedReconciler(settings, client=client, clock=clock), auto_commit=True)
        await poller.run_once()
        feeds[url] = rss_document([_entry(1), _entry(3)])
        await poller.run_once()

    assert poller.reconciler.pending_count == 0
    assert [i.link for i in poller.reconciler.items] == ["https://news.example/1", "https://news.example/3"]


@pytest.mark.asyncio
async def test_run_forever_stops(settings, feeds, clock, client_factory):
    feeds[settings.sources[0].url] = rss_document([_entry(1)])
    stop = asyncio.Event()

    async with client_factory() as client:
        poller = Poller(FeedReconciler(settings, client=client, clock=clock), timedelta(milliseconds=10))
        task = asyncio.create_task(poller.run_forever(stop))
        await asyncio.sleep(0.1)
        stop.set()
        await asyncio.wait_for(task, timeout=1)

    assert poller.cycles >= 2
    assert poller.interval == timedelta(milliseconds=10)


def test_default_interval_comes_from_settings(settings):
    poller = Poller(FeedReconciler(settings))
    assert poller.interval == settings.poll_interval


def test_zero_interval_is_kept(settings):
    poller = Poller(FeedReconciler(settings), timedelta(0))
    assert poller.interval == timedelta(0)
