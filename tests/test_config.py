"""
Tests for gate configuration loading.
"""

import json
from datetime import date

import pytest

from logingate.consent import DocumentKey
from logingate.core.config import GateConfig, DocumentConfig, UNKNOWN_SUPPORT_CONTACT
from logingate.errors import ConfigurationError
from logingate.util.config import flatten_config, get_config_value, load_config_file


class TestGateConfig:
    """Test GateConfig construction"""

    def test_defaults(self):
        config = GateConfig()
        assert config.support_contact == UNKNOWN_SUPPORT_CONTACT
        assert config.authorization_timeout == 10.0
        assert not config.authorization_configured
        for key in DocumentKey:
            assert config.document(key) == DocumentConfig()

    def test_lists_are_split_and_trimmed(self):
        config = GateConfig(
            banned_emails=" a@x.org ; ;b@x.org",
            allowed_groups=["admins ", "", " ops"]
        )
        assert config.banned_emails == ["a@x.org", "b@x.org"]
        assert config.allowed_groups == ["admins", "ops"]

    def test_blank_support_email(self):
        assert GateConfig(support_email="  ").support_contact == UNKNOWN_SUPPORT_CONTACT
        assert GateConfig(support_email=" help@x.org ").support_contact == "help@x.org"

    def test_validate(self):
        assert GateConfig().validate()

        with pytest.raises(ConfigurationError) as exc_info:
            GateConfig(authorization_timeout=0).validate()
        assert exc_info.value.field == "authorization.timeout"

        config = GateConfig(documents={DocumentKey.AUSE: DocumentConfig(required_seconds=-1)})
        with pytest.raises(ConfigurationError) as exc_info:
            config.validate()
        assert exc_info.value.field == "ause.required_seconds"


class TestConfigLoading:
    """Test loading configuration from mappings, files and the environment"""

    def test_from_dotted_dict(self):
        config = GateConfig.from_dict({
            "support.email": "help@example.org",
            "authorization.url": "http://authz/api",
            "authorization.key": "k",
            "authorization.timeout": "2.5",
            "banned.emails": "bad@example.org",
            "tandc.link": "http://docs/tandc",
            "tandc.last_updated": "2024-03-01",
            "tandc.required_seconds": "30",
        })

        assert config.support_contact == "help@example.org"
        assert config.authorization_configured
        assert config.authorization_timeout == 2.5
        assert config.banned_emails == ["bad@example.org"]

        tandc = config.document(DocumentKey.TANDC)
        assert tandc.link == "http://docs/tandc"
        assert tandc.last_updated == date(2024, 3, 1)
        assert tandc.required_seconds == 30
        assert config.document(DocumentKey.AUSE).link is None

    def test_from_nested_dict(self):
        config = GateConfig.from_dict({
            "support": {"email": "help@example.org"},
            "dpriv": {"link": "http://docs/dpriv", "required_seconds": 5},
        })
        assert config.support_email == "help@example.org"
        assert config.document(DocumentKey.DPRIV).required_seconds == 5

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("LOGINGATE_SUPPORT_EMAIL", "env@example.org")
        monkeypatch.setenv("LOGINGATE_ALLOWED_GROUPS", "admins;ops")
        monkeypatch.setenv("LOGINGATE_AUSE_LAST_UPDATED", "2024-02-02")

        config = GateConfig.from_env()
        assert config.support_email == "env@example.org"
        assert config.allowed_groups == ["admins", "ops"]
        assert config.document(DocumentKey.AUSE).last_updated == date(2024, 2, 2)

    def test_from_yaml_file(self, tmp_path):
        path = tmp_path / "gate.yaml"
        path.write_text(
            "support:\n"
            "  email: help@example.org\n"
            "invitable_domains: '*.ac.uk;*.example.org'\n"
            "tandc:\n"
            "  link: http://docs/tandc\n"
            "  last_updated: 2024-01-15\n"
            "  required_seconds: 20\n"
        )

        config = GateConfig.from_file(str(path))
        assert config.invitable_domains == ["*.ac.uk", "*.example.org"]
        assert config.document(DocumentKey.TANDC).last_updated == date(2024, 1, 15)
        assert config.document(DocumentKey.TANDC).required_seconds == 20

    def test_from_json_file(self, tmp_path):
        path = tmp_path / "gate.json"
        path.write_text(json.dumps({"allowed_emails": ["ops@example.org"]}))

        config = GateConfig.from_file(str(path))
        assert config.allowed_emails == ["ops@example.org"]

    def test_unsupported_file(self, tmp_path):
        path = tmp_path / "gate.ini"
        path.write_text("x=1")
        with pytest.raises(ValueError):
            load_config_file(str(path))

    def test_invalid_date(self):
        with pytest.raises(ConfigurationError) as exc_info:
            GateConfig.from_dict({"tandc.last_updated": "yesterday"})
        assert exc_info.value.field == "tandc.last_updated"

    def test_invalid_required_seconds(self):
        with pytest.raises(ConfigurationError):
            GateConfig.from_dict({"ause.required_seconds": "soon"})

    def test_negative_required_seconds(self):
        with pytest.raises(ConfigurationError):
            GateConfig.from_dict({"ause.required_seconds": "-1"})

    def test_invalid_timeout(self):
        with pytest.raises(ConfigurationError):
            GateConfig.from_dict({"authorization.timeout": "0"})
        with pytest.raises(ValueError):
            GateConfig.from_dict({"authorization.timeout": "never"})


class TestConfigUtilities:
    """Test configuration helpers"""

    def test_flatten_config(self):
        assert flatten_config({"a": {"b": 1, "c": {"d": 2}}, "e": [1]}) == {
            "a.b": 1, "a.c.d": 2, "e": [1]
        }

    def test_get_config_value(self):
        config = {"a": None, "b": 2}
        assert get_config_value(config, "a", "b") == 2
        assert get_config_value(config, "c", default=3) == 3
