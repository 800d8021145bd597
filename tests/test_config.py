import pytest

from logsieve.core.config import ChainAccessConfig, filter_endpoint_urls, parse_address_list
from logsieve.core.exceptions import ConfigurationError


def test_filter_endpoint_urls() -> None:
    raw = " https://a.io/v2/k1 ,https://b.io/<key>,, https://c.io/your_key ,https://d.io/xxxxx,https://e.io"
    assert filter_endpoint_urls(raw) == ["https://a.io/v2/k1", "https://e.io"]
    assert filter_endpoint_urls(["https://f.io ", "YOUR-KEY"]) == ["https://f.io"]
    assert filter_endpoint_urls(None) == []


def test_parse_address_list() -> None:
    assert parse_address_list(" 0xAB ,0xab,, 0xCd") == ("0xab", "0xcd")
    assert parse_address_list("") == ()


def test_from_env_defaults() -> None:
    config = ChainAccessConfig.from_env({"RPC_URLS": "https://a.io,https://b.io"})

    assert config.rpc_urls == ("https://a.io", "https://b.io")
    assert config.qps == 2
    assert config.timeout_s == 15.0
    assert config.lookback_days == 14
    assert config.lookback_seconds == 14 * 86_400
    assert config.approx_block_interval_s == 2.2
    assert config.addresses == ()


def test_from_env_overrides() -> None:
    config = ChainAccessConfig.from_env(
        {
            "RPC_URL": "https://single.io",
            "RPC_QPS": "0",
            "RPC_TIMEOUT_MS": "2500",
            "LOOKBACK_DAYS": "1.5",
            "APPROX_BLOCK_TIME_SECONDS": "12",
            "CONTEXT_ADDRESSES": "0xAA,0xBB",
            "LOG_INIT_SPAN": "100",
            "LOG_MIN_SPAN": "5",
            "LOG_MAX_SPAN": "400",
        }
    )

    assert config.rpc_urls == ("https://single.io",)
    assert config.qps == 1
    assert config.timeout_s == 2.5
    assert config.lookback_seconds == 129_600
    assert config.approx_block_interval_s == 12.0
    assert config.addresses == ("0xaa", "0xbb")
    assert (config.log_init_span, config.log_min_span, config.log_max_span) == (100, 5, 400)


def test_rpc_urls_wins_over_rpc_url() -> None:
    config = ChainAccessConfig.from_env({"RPC_URLS": "https://many.io", "RPC_URL": "https://single.io"})
    assert config.rpc_urls == ("https://many.io",)


@pytest.mark.parametrize(
    "environ",
    [
        {},
        {"RPC_URLS": "https://a.io/<key>"},
        {"RPC_URLS": "https://a.io", "RPC_QPS": "fast"},
        {"RPC_URLS": "https://a.io", "APPROX_BLOCK_TIME_SECONDS": "0"},
        {"RPC_URLS": "https://a.io", "LOG_MIN_SPAN": "50", "LOG_MAX_SPAN": "10"},
    ],
)
def test_from_env_rejects_unusable_config(environ: dict) -> None:
    with pytest.raises(ConfigurationError):
        ChainAccessConfig.from_env(environ)


def test_from_env_reads_dotenv(tmp_path, monkeypatch) -> None:
    # setenv first so monkeypatch also removes what load_dotenv writes
    for key in ("RPC_URLS", "RPC_URL", "RPC_QPS"):
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    env_file = tmp_path / ".env"
    env_file.write_text("RPC_URLS=https://dotenv.io\nRPC_QPS=7\n")

    config = ChainAccessConfig.from_env(dotenv_path=env_file)

    assert config.rpc_urls == ("https://dotenv.io",)
    assert config.qps == 7
