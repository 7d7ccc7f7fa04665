import secrets

import pytest

from mailassist import config
from mailassist.models import DEFAULT_HOTKEY, DEFAULT_MODEL, DEFAULT_SYSTEM_PROMPT, PLACEHOLDER_API_KEY, Config


def test_load_creates_default_config_when_missing(tmp_path, monkeypatch):
    cfg_path = tmp_path / "mailassist" / "config.conf"
    monkeypatch.setattr(config, "CONFIG_PATH", cfg_path)

    cfg = config.load_config()

    assert cfg_path.exists()
    assert cfg_path.read_text().startswith("# mailassist configuration")
    assert cfg.openai_api_key == PLACEHOLDER_API_KEY
    assert cfg.openai_model == DEFAULT_MODEL
    assert cfg.hotkey == DEFAULT_HOTKEY
    assert cfg.system_prompt == DEFAULT_SYSTEM_PROMPT
    assert cfg.user_name == "Your Name"
    assert not config.is_valid(cfg)


def test_save_and_load_round_trip(tmp_path, monkeypatch):
    cfg_path = tmp_path / "config.conf"
    monkeypatch.setattr(config, "CONFIG_PATH", cfg_path)

    cfg = Config(
        openai_api_key="sk-" + "a" * 40,
        openai_model="gpt-4o",
        system_prompt="Answer in Dutch.\nKeep it short, 100% professional.\n\tSign with C:\\Support",
        hotkey="ctrl+alt+r",
        user_name="Jane Doe",
        user_email="jane@example.com",
    )
    assert config.save_config(cfg)

    assert config.load_config() == cfg


def test_absent_fields_load_as_defaults(tmp_path):
    cfg_path = tmp_path / "config.conf"
    cfg_path.write_text("[openai]\napi_key = sk-abcdefghijklmnop\nmodel =\n\n[user]\nname = Jane\n")

    cfg = config.load_config(cfg_path)

    assert cfg.openai_api_key == "sk-abcdefghijklmnop"
    assert cfg.openai_model == DEFAULT_MODEL
    assert cfg.hotkey == DEFAULT_HOTKEY
    assert cfg.system_prompt == DEFAULT_SYSTEM_PROMPT
    assert cfg.user_name == "Jane"
    assert cfg.user_email is None


def test_none_fields_are_not_written(tmp_path):
    cfg_path = tmp_path / "config.conf"
    assert config.save_config(Config(openai_api_key="sk-abcdefghijklmnop"), cfg_path)

    text = cfg_path.read_text()
    assert "name" not in text
    assert "[user]" in text

    loaded = config.load_config(cfg_path)
    assert loaded.user_name is None
    assert loaded.user_email is None


def test_unparseable_config_returns_none(tmp_path):
    cfg_path = tmp_path / "config.conf"
    cfg_path.write_text("this is not a key file\n")

    assert config.load_config(cfg_path) is None


def test_save_failure_returns_false(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("")

    assert config.save_config(Config(), blocker / "config.conf") is False


def test_save_replaces_whole_file(tmp_path):
    cfg_path = tmp_path / "config.conf"
    cfg_path.write_text("[legacy]\nkey = value\n")

    assert config.save_config(Config(openai_api_key="sk-abcdefghijklmnop"), cfg_path)

    text = cfg_path.read_text()
    assert "legacy" not in text
    assert list(tmp_path.iterdir()) == [cfg_path]


def test_default_config_path_follows_xdg(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

    assert config.default_config_path() == tmp_path / "mailassist" / "config.conf"
    assert config.default_config_path() == config.default_config_path()


@pytest.mark.parametrize("key", [None, "", "short", "0123456789", PLACEHOLDER_API_KEY])
def test_is_valid_rejects_unusable_keys(key):
    assert not config.is_valid(Config(openai_api_key=key))


def test_is_valid_accepts_random_keys():
    for _ in range(20):
        cfg = Config(openai_api_key=secrets.token_hex(16), openai_model="", system_prompt="")
        assert config.is_valid(cfg)
    assert config.is_valid(Config(openai_api_key="01234567890"))
    assert not config.is_valid(None)


def test_update_config_validates_keys(tmp_path, monkeypatch):
    cfg_path = tmp_path / "config.conf"
    monkeypatch.setattr(config, "CONFIG_PATH", cfg_path)

    config.update_config(openai_model="gpt-4-turbo")
    loaded = config.load_config()
    assert loaded.openai_model == "gpt-4-turbo"

    try:
        config.update_config(unknown="value")
    except config.ConfigError:
        pass
    else:
        raise AssertionError("Expected ConfigError for invalid key")


def test_values_are_escaped_on_one_line():
    assert config.escape_value(" leading\nnext\\") == "\\sleading\\nnext\\\\"
    assert config.unescape_value("\\sleading\\nnext\\\\") == " leading\nnext\\"
    assert config.unescape_value("C:\\q") == "C:\\q"


def test_surrounding_spaces_survive_round_trip(tmp_path):
    cfg_path = tmp_path / "config.conf"
    config.save_config(Config(openai_api_key="sk-0123456789ab", user_name=" Jane "), cfg_path)

    loaded = config.load_config(cfg_path)

    assert loaded.user_name == " Jane "


def test_repeated_keys_and_sections_are_merged(tmp_path):
    cfg_path = tmp_path / "config.conf"
    cfg_path.write_text(
        "[openai]\n"
        "api_key = sk-old-0123456789\n"
        "api_key = sk-new-0123456789\n"
        "[ui]\n"
        "hotkey = ctrl+alt+a\n"
        "[user]\n"
        "name = Jane\n"
        "[ui]\n"
        "hotkey = ctrl+alt+b\n",
        encoding="utf-8",
    )

    loaded = config.load_config(cfg_path)

    assert loaded is not None
    assert loaded.openai_api_key == "sk-new-0123456789"
    assert loaded.hotkey == "ctrl+alt+b"
    assert loaded.user_name == "Jane"
