import pytest

from pushclient.cli import build_parser, settings_from_args
from pushclient.config import ClientSettings, http_base_from_ws


@pytest.mark.parametrize(
    ("ws_url", "expected"),
    [
        ("wss://ws.abiosgaming.com/v0", "https://ws.abiosgaming.com/v0"),
        ("ws://localhost:8080/v0", "http://localhost:8080/v0"),
    ],
)
def test_http_base_from_ws(ws_url, expected):
    assert http_base_from_ws(ws_url) == expected


def test_defaults():
    settings = ClientSettings()

    assert str(settings.ws_url) == "wss://ws.abiosgaming.com/v0"
    assert settings.api_base_url == "https://ws.abiosgaming.com/v0"
    assert settings.secret_header == "Abios-Secret"
    assert settings.keepalive_interval_seconds == 30
    assert settings.rate_limit_delay_seconds == 30
    assert settings.reconnect_delay_seconds == 5
    assert settings.retain_reconnect_token_on_empty is False
    assert settings.stop_keepalive_on_terminate is True


def test_explicit_api_base_url_is_kept():
    settings = ClientSettings(api_base_url="https://api.push.test")
    assert settings.api_base_url == "https://api.push.test"


def test_yaml_config_file(tmp_path, monkeypatch):
    config = tmp_path / "client.yaml"
    config.write_text(
        "ws_url: wss://push.test/v1\n"
        "client_secret: from-file\n"
        "reconnect_delay_seconds: 1.5\n"
        "log_level: debug\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("PUSH_CLIENT_CONFIG_FILE", str(config))

    settings = ClientSettings()

    assert settings.api_base_url == "https://push.test/v1"
    assert settings.client_secret == "from-file"
    assert settings.reconnect_delay_seconds == 1.5
    assert settings.log_level == "DEBUG"
    assert settings.config_path == config


def test_init_arguments_override_yaml(tmp_path, monkeypatch):
    config = tmp_path / "client.yaml"
    config.write_text("client_secret: from-file\n", encoding="utf-8")
    monkeypatch.setenv("PUSH_CLIENT_CONFIG_FILE", str(config))

    assert ClientSettings(client_secret="from-cli").client_secret == "from-cli"


def test_invalid_yaml_root_is_rejected(tmp_path, monkeypatch):
    config = tmp_path / "client.yaml"
    config.write_text("- just\n- a list\n", encoding="utf-8")
    monkeypatch.setenv("PUSH_CLIENT_CONFIG_FILE", str(config))

    with pytest.raises(ValueError):
        ClientSettings()


def test_cli_overrides():
    args = build_parser().parse_args(
        [
            "--addr",
            "wss://push.test/v2",
            "--client-id",
            "id",
            "--client-id-secret",
            "secret",
            "--access-token-url",
            "https://auth.test/v2",
            "--subscription-name",
            "demo",
            "--reconnect-token",
            "T1",
            "--log-level",
            "warning",
        ]
    )
    settings = settings_from_args(args)

    assert settings.api_base_url == "https://push.test/v2"
    assert settings.client_id == "id"
    assert settings.client_id_secret == "secret"
    assert settings.token_url == "https://auth.test/v2"
    assert settings.subscription_name == "demo"
    assert settings.subscription_id is None
    assert settings.reconnect_token == "T1"
    assert settings.log_level == "WARNING"


def test_subscription_id_and_name_are_exclusive():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["--subscription-id", "a", "--subscription-name", "b"])
