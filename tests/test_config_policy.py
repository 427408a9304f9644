"""Tests for the config allowlist, validation and secret masking."""

from mission_control.core.config_policy import (
    REDACTED,
    affects_gateway,
    get_at_path,
    is_path_allowed,
    mask_secrets,
    set_at_path,
    validate_value,
)


class TestAllowlist:
    def test_safe_path_is_allowed(self) -> None:
        assert is_path_allowed("model") is True

    def test_secret_path_is_rejected(self) -> None:
        assert is_path_allowed("channels.telegram.botToken") is False


class TestValidateValue:
    """Tests for per-path value validation."""

    def test_port_above_max_fails(self) -> None:
        result = validate_value("gateway.port", 70000)
        assert result.ok is False
        assert result.error == "Must be <= 65535"

    def test_port_in_range_passes(self) -> None:
        assert validate_value("gateway.port", 8080).ok is True

    def test_port_below_min_fails(self) -> None:
        assert validate_value("gateway.port", 0).error == "Must be >= 1"

    def test_bool_is_not_a_number(self) -> None:
        assert validate_value("gateway.port", True).ok is False

    def test_nan_is_not_a_number(self) -> None:
        assert validate_value("gateway.port", float("nan")).ok is False

    def test_enum(self) -> None:
        assert validate_value("log.level", "info").ok is True
        assert validate_value("log.level", "verbose").ok is False

    def test_boolean(self) -> None:
        assert validate_value("gateway.enabled", False).ok is True
        assert validate_value("gateway.enabled", "false").ok is False


class TestPaths:
    def test_set_creates_intermediates(self) -> None:
        config: dict = {}
        set_at_path(config, "agents.defaults.model", "opus")
        assert get_at_path(config, "agents.defaults.model") == "opus"

    def test_set_replaces_non_object_intermediate(self) -> None:
        config = {"gateway": "legacy"}
        set_at_path(config, "gateway.port", 9000)
        assert config == {"gateway": {"port": 9000}}

    def test_missing_path_reads_none(self) -> None:
        assert get_at_path({"a": 1}, "a.b") is None

    def test_gateway_paths_recommend_restart(self) -> None:
        assert affects_gateway("gateway.port") is True
        assert affects_gateway("model") is False


class TestMaskSecrets:
    def test_nested_secrets_are_redacted(self) -> None:
        masked = mask_secrets({"a": {"token": "xyz", "nested": {"password": "p"}}})
        assert masked == {"a": {"token": REDACTED, "nested": {"password": REDACTED}}}

    def test_secret_object_replaced_wholesale(self) -> None:
        assert mask_secrets({"credentials": {"user": "u"}}) == {"credentials": REDACTED}

    def test_input_is_not_mutated(self) -> None:
        original = {"api_key": "k", "list": [{"secret": "s"}]}
        masked = mask_secrets(original)
        assert original["api_key"] == "k"
        assert masked == {"api_key": REDACTED, "list": [{"secret": REDACTED}]}

    def test_camel_case_api_key_is_redacted(self) -> None:
        masked = mask_secrets({"providers": {"openrouter": {"apiKey": "k", "baseUrl": "u"}}, "api-key": "k2"})
        assert masked == {"providers": {"openrouter": {"apiKey": REDACTED, "baseUrl": "u"}}, "api-key": REDACTED}
