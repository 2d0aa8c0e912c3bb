"""
Configuration module for the login gate.

Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

Keys are accepted in dotted (``support.email``, ``tandc.last_updated``),
underscore (``support_email``) or nested mapping form. List values may be
given as semicolon-separated strings.
"""

from datetime import date
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field

from ..common.utils import split_list, parse_date
from ..consent.types import DocumentKey, DOCUMENT_ORDER
from ..errors import ConfigurationError
from ..util.config import load_config_from_env, flatten_config, load_config_file, get_config_value


UNKNOWN_SUPPORT_CONTACT = "unknown"
DEFAULT_AUTHORIZATION_TIMEOUT = 10.0


def _normalise_key(key: str) -> str:
    return str(key).strip().lower().replace("-", "_").replace(".", "_")


@dataclass
class DocumentConfig:
    """Configuration of one consent document"""
    link: Optional[str] = None
    last_updated: Optional[date] = None
    required_seconds: int = 0


@dataclass
class GateConfig:
    """Configuration for the login gate"""
    support_email: Optional[str] = None
    authorization_url: Optional[str] = None
    authorization_key: Optional[str] = None
    authorization_timeout: float = DEFAULT_AUTHORIZATION_TIMEOUT
    banned_emails: List[str] = field(default_factory=list)
    allowed_emails: List[str] = field(default_factory=list)
    allowed_groups: List[str] = field(default_factory=list)
    invitable_domains: List[str] = field(default_factory=list)
    uninvitable_domains: List[str] = field(default_factory=list)
    documents: Dict[DocumentKey, DocumentConfig] = field(default_factory=dict)

    def __post_init__(self):
        for name in ("banned_emails", "allowed_emails", "allowed_groups",
                     "invitable_domains", "uninvitable_domains"):
            setattr(self, name, split_list(getattr(self, name)))

        for key in DOCUMENT_ORDER:
            self.documents.setdefault(key, DocumentConfig())

    @property
    def support_contact(self) -> str:
        """Support contact shown to users; never empty."""
        if self.support_email and self.support_email.strip():
            return self.support_email.strip()
        return UNKNOWN_SUPPORT_CONTACT

    @property
    def authorization_configured(self) -> bool:
        """Check if the remote authorization service is configured"""
        return bool(self.authorization_url) and bool(self.authorization_key)

    def document(self, key: DocumentKey) -> DocumentConfig:
        return self.documents[key]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GateConfig":
        """
        Create configuration from a mapping.

        Raises:
            ConfigurationError: if a value cannot be parsed
        """
        flat = {_normalise_key(k): v for k, v in flatten_config(data).items()}

        documents = {}
        for key in DOCUMENT_ORDER:
            prefix = key.value
            link = get_config_value(flat, f"{prefix}_link")
            last_updated = get_config_value(flat, f"{prefix}_last_updated")
            required_seconds = get_config_value(flat, f"{prefix}_required_seconds", default=0)

            try:
                last_updated = parse_date(last_updated)
            except ValueError as e:
                raise ConfigurationError(
                    f"{prefix}.last_updated must be a YYYY-MM-DD date: {e}",
                    field=f"{prefix}.last_updated"
                )

            try:
                required_seconds = int(str(required_seconds).strip() or 0)
            except ValueError as e:
                raise ConfigurationError(
                    f"{prefix}.required_seconds must be an integer: {e}",
                    field=f"{prefix}.required_seconds"
                )

            if link is not None:
                link = str(link).strip() or None

            documents[key] = DocumentConfig(
                link=link,
                last_updated=last_updated,
                required_seconds=required_seconds
            )

        timeout = get_config_value(flat, "authorization_timeout", default=DEFAULT_AUTHORIZATION_TIMEOUT)
        try:
            timeout = float(timeout)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"authorization.timeout must be a number: {e}", field="authorization.timeout"
            )

        config = cls(
            support_email=get_config_value(flat, "support_email"),
            authorization_url=get_config_value(flat, "authorization_url"),
            authorization_key=get_config_value(flat, "authorization_key"),
            authorization_timeout=timeout,
            banned_emails=get_config_value(flat, "banned_emails", default=[]),
            allowed_emails=get_config_value(flat, "allowed_emails", default=[]),
            allowed_groups=get_config_value(flat, "allowed_groups", default=[]),
            invitable_domains=get_config_value(flat, "invitable_domains", default=[]),
            uninvitable_domains=get_config_value(flat, "uninvitable_domains", default=[]),
            documents=documents,
        )
        config.validate()
        return config

    @classmethod
    def from_env(cls, prefix: str = "LOGINGATE_") -> "GateConfig":
        """Create configuration from environment variables"""
        return cls.from_dict(load_config_from_env(prefix))

    @classmethod
    def from_file(cls, file_path: str) -> "GateConfig":
        """Create configuration from a JSON or YAML file"""
        return cls.from_dict(load_config_file(file_path))

    def validate(self) -> bool:
        """Validate the configuration"""
        if self.authorization_timeout <= 0:
            raise ConfigurationError(
                "authorization.timeout must be positive", field="authorization.timeout"
            )
        for key, document in self.documents.items():
            if document.required_seconds < 0:
                raise ConfigurationError(
                    f"{key.value}.required_seconds must be non-negative",
                    field=f"{key.value}.required_seconds"
                )
        return True
