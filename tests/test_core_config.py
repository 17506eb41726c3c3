"""Tests for config loading, env overrides and OBRAS_PATHS path resolution."""

from obras.core.config import OBRAS_PATHS, _PACKAGE_DIR, get_branding, get_config, get_config_value


def test_get_config_returns_dict():
    config = get_config(reload=True)
    assert isinstance(config, dict)
    assert "api" in config and "auth" in config


def test_get_config_caching():
    c1 = get_config()
    c2 = get_config()
    assert c1 is c2


def test_get_config_reload_returns_fresh():
    c1 = get_config()
    c2 = get_config(reload=True)
    c3 = get_config()
    assert c3 is c2
    assert c1 is not c2


def test_get_config_value_nested():
    assert get_config_value("api", "base_url") is not None
    assert get_config_value("web", "port") == 5000


def test_get_config_value_missing_returns_default():
    assert get_config_value("nonexistent", "deep", default="fallback") == "fallback"


def test_env_override_wins_over_file(monkeypatch):
    monkeypatch.setenv("OBRAS_API_BASE_URL", "https://api.example.test")
    try:
        assert get_config(reload=True)["api"]["base_url"] == "https://api.example.test"
    finally:
        monkeypatch.delenv("OBRAS_API_BASE_URL")
        get_config(reload=True)


def test_branding_merges_defaults():
    branding = get_branding()
    assert branding["app_name"] == "Obras"
    assert branding["brand_office_keyword"] == "sugate"
    # nav_bg only exists in the defaults; primary comes from config.yaml
    assert branding["colors"]["nav_bg"]
    assert branding["colors"]["primary"] == "#1F4E79"


def test_paths_resolve_under_package_dir():
    for prop in ("exports", "secret_key_file"):
        path = getattr(OBRAS_PATHS, prop)
        assert path.is_absolute(), f"{prop} is not absolute"
        assert str(path).startswith(str(_PACKAGE_DIR))


def test_config_dir_is_package_dir():
    assert OBRAS_PATHS.config_dir == _PACKAGE_DIR
    assert (OBRAS_PATHS.config_dir / "config.yaml").exists()
