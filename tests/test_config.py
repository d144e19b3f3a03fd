from tickerbot.utils import BotConfig, parse_args


def test_parse_args_defaults(monkeypatch):
    for var in ("CHANNELS", "LOOKBACK_DAYS", "BACKFILL_MAX_ITEMS", "AGENT_HANDLE", "REFERENCE_TZ"):
        monkeypatch.delenv(var, raising=False)
    args = parse_args([])
    assert args.channels == []
    assert args.lookback_days == 14
    assert args.backfill_max_items is None
    assert args.agent_handle == "SuperPony"
    assert args.reference_tz == "UTC"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("CHANNELS", "111, 222,,")
    monkeypatch.setenv("BACKFILL_MAX_ITEMS", "500")
    monkeypatch.setenv("DB_PATH", "/tmp/scanner/db.json")
    cfg = BotConfig.from_args(parse_args([]))
    assert cfg.channels == ["111", "222"]
    assert cfg.backfill_max_items == 500
    assert cfg.db_path == "/tmp/scanner/db.json"


def test_bot_config_from_args():
    ns = parse_args(["--channel", "1", "--channel", "2", "--lookback-days", "3", "--reference-tz", "America/New_York"])
    cfg = BotConfig.from_args(ns)
    assert cfg.channels == ["1", "2"]
    assert cfg.lookback_days == 3
    assert cfg.reference_tz == "America/New_York"
    assert cfg.page_size == 100
