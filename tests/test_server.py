from datetime import date, datetime, timezone

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from conftest import FakeOracle, daily_series, make_record
from tickerbot.bootstrap import BootstrapCoordinator
from tickerbot.ranking import Ranker
from tickerbot.server import create_app
from tickerbot.service import CommandService
from tickerbot.utils import BotConfig

NOW = datetime(2025, 8, 20, 12, tzinfo=timezone.utc)


def _clear_registry() -> None:
    for collector in list(REGISTRY._collector_to_names.keys()):
        try:
            REGISTRY.unregister(collector)
        except KeyError:
            pass


def build_app(store, bootstrap=None):
    _clear_registry()
    store.append_mentions(
        [
            make_record(1, "TSLA", "u1", "ann"),
            make_record(2, "GME", "u2", "bob"),
            make_record(3, "TSLA", "u2", "bob"),
        ]
    )
    oracle = FakeOracle(
        {
            "TSLA": daily_series("TSLA", date(2025, 8, 1), opens=[100.0, 100.0], closes=[100.0, 125.0]),
            "GME": daily_series("GME", date(2025, 8, 1), opens=[10.0, 10.0], closes=[10.0, 9.0]),
        }
    )
    cfg = BotConfig(universe_path="unused", db_path=str(store.path))
    commands = CommandService(store, Ranker(oracle), clock=lambda: NOW)
    return create_app(cfg, commands, bootstrap or BootstrapCoordinator([]))


def test_health_and_metrics(store):
    with TestClient(build_app(store)) as client:
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"
        assert client.get("/metrics").status_code == 200


def test_status_reports_bootstrap(store):
    bootstrap = BootstrapCoordinator([])
    with TestClient(build_app(store, bootstrap)) as client:
        assert client.get("/status").json()["state"] == "BOOTSTRAPPING"
        bootstrap.ready.set()
        assert client.get("/status").json() == {
            "state": "READY",
            "progress": 0,
            "channels": {},
            "errors": {},
        }


def test_tickers_endpoint(store):
    with TestClient(build_app(store)) as client:
        body = client.get("/tickers").json()
        assert [(i["ticker"], i["count"]) for i in body["items"]] == [("TSLA", 2), ("GME", 1)]
        assert body["unique"] == 2 and body["total"] == 3
        assert client.get("/tickers", params={"min_mentions": 2}).json()["unique"] == 1
        assert client.get("/tickers", params={"min_mentions": 0}).status_code == 400


def test_user_tickers_endpoint(store):
    with TestClient(build_app(store)) as client:
        body = client.get("/users/u2/tickers").json()
        assert [i["ticker"] for i in body["items"]] == ["GME", "TSLA"]
        assert client.get("/users/u2/tickers", params={"since": "2025-09-01"}).json()["items"] == []
        assert client.get("/users/u2/tickers", params={"since": "soon"}).status_code == 400


def test_leaderboard_endpoint(store):
    with TestClient(build_app(store)) as client:
        body = client.get("/leaderboard").json()
        assert [t["ticker"] for t in body["tickers"]] == ["TSLA", "GME"]
        assert body["tickers"][0]["first_mention"]["user_name"] == "ann"
        assert body["first_mentions"][0]["count"] == 1


def test_gainers_endpoint(store):
    with TestClient(build_app(store)) as client:
        body = client.get("/gainers", params={"top": 5}).json()
        assert [(g["rank"], g["ticker"], g["pct_change"]) for g in body] == [
            (1, "TSLA", 25.0),
            (2, "GME", -10.0),
        ]
        assert body[0]["first_user_name"] == "ann"
        assert client.get("/gainers", params={"mode": "yearly"}).status_code == 400


def test_dashboard_endpoint(store):
    with TestClient(build_app(store)) as client:
        body = client.get("/dashboard").json()
        assert body["total_tracked"] == 2
        assert body["top_gainers"] == ["TSLA", "GME"]
