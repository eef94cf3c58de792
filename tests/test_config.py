import json
from datetime import timedelta

import pytest

from rss_live.config import DEFAULT_JSON_PROXIES, DatePolicy, Settings
from rss_live.exceptions import ConfigError
from rss_live.sources import DEFAULT_SOURCES, FeedSource, load_sources


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    import os

    for key in list(os.environ):
        if key.startswith("RSS_LIVE_"):
            monkeypatch.delenv(key)


def test_defaults():
    s = Settings.from_env(dotenv=False)
    assert s.initial_batch_size == 20
    assert s.poll_interval == timedelta(seconds=30)
    assert s.recency_window == timedelta(minutes=10)
    assert s.description_limit == 200
    assert s.json_proxies == DEFAULT_JSON_PROXIES
    assert s.xml_proxies == ()
    assert s.date_policy is DatePolicy.UTC
    assert s.tz is None
    assert [src.name for src in s.sources] == [src.name for src in DEFAULT_SOURCES]


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("RSS_LIVE_POLL_INTERVAL", "60")
    monkeypatch.setenv("RSS_LIVE_RECENCY_WINDOW", "3600")
    monkeypatch.setenv("RSS_LIVE_BATCH_SIZE", "50")
    monkeypatch.setenv("RSS_LIVE_DATE_POLICY", "LOCAL")
    monkeypatch.setenv("RSS_LIVE_LOCAL_TZ", "UTC")
    monkeypatch.setenv("RSS_LIVE_JSON_PROXIES", "https://p1/?u=, https://p2/?u=")
    monkeypatch.setenv("RSS_LIVE_XML_PROXIES", "https://x1/raw?url=")
    monkeypatch.setenv("RSS_LIVE_LOG_JSON", "true")

    s = Settings.from_env(dotenv=False)
    assert s.poll_interval == timedelta(seconds=60)
    assert s.recency_window == timedelta(hours=1)
    assert s.initial_batch_size == 50
    assert s.date_policy is DatePolicy.LOCAL
    assert s.local_timezone == "UTC" and s.tz is not None
    assert s.json_proxies == ("https://p1/?u=", "https://p2/?u=")
    assert s.xml_proxies == ("https://x1/raw?url=",)
    assert s.log_json is True


def test_empty_proxy_list_disables_tier(monkeypatch):
    monkeypatch.setenv("RSS_LIVE_JSON_PROXIES", "")
    assert Settings.from_env(dotenv=False).json_proxies == ()


@pytest.mark.parametrize(
    "name, value",
    [
        ("RSS_LIVE_POLL_INTERVAL", "soon"),
        ("RSS_LIVE_RECENCY_WINDOW", "-5"),
        ("RSS_LIVE_BATCH_SIZE", "1.5"),
        ("RSS_LIVE_DATE_POLICY", "guess"),
        ("RSS_LIVE_LOCAL_TZ", "Mars/Olympus_Mons"),
    ],
)
def test_invalid_values(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigError) as exc:
        Settings.from_env(dotenv=False)
    assert name in str(exc.value)


def test_feeds_file(monkeypatch, tmp_path):
    path = tmp_path / "feeds.json"
    path.write_text(
        json.dumps(
            [
                {"url": "https://a.example/rss", "name": "a", "label": "Alpha"},
                {"url": "https://b.example/rss", "name": "b", "encoding": "windows-1255"},
            ]
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv("RSS_LIVE_FEEDS_FILE", str(path))
    s = Settings.from_env(dotenv=False)
    assert s.sources == [
        FeedSource(url="https://a.example/rss", name="a", label="Alpha"),
        FeedSource(url="https://b.example/rss", name="b", encoding="windows-1255"),
    ]
    assert s.sources[0].display_name == "Alpha"
    assert s.sources[1].display_name == "b"


@pytest.mark.parametrize(
    "content",
    [
        "not json",
        json.dumps({"url": "x", "name": "y"}),
        json.dumps([{"url": "https://a.example/rss"}]),
        json.dumps([{"url": "https://a/1", "name": "a"}, {"url": "https://a/2", "name": "a"}]),
        json.dumps(["just a string"]),
    ],
)
def test_load_sources_rejects_bad_files(tmp_path, content):
    path = tmp_path / "feeds.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_sources(path)


def test_load_sources_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_sources(tmp_path / "nope.json")
