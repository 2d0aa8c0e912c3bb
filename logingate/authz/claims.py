# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Token claims for short_name and projects, refreshed at token issuance time.
"""

import logging
from typing import Dict, Optional, TYPE_CHECKING

from ..store import AttributeStore, UserRecord
from .client import AuthorizationService, AuthorizationClient
from .engine import (
    SHORT_NAME_ATTRIBUTE, PROJECTS_ATTRIBUTE, ShortNameTooLong,
    derive_cached_attributes, set_if_changed, normalise_email
)
from .types import STATUS_ACTIVE

if TYPE_CHECKING:
    from ..core.config import GateConfig


logger = logging.getLogger(__name__)


def cached_claims(user: UserRecord) -> Dict[str, str]:
    """Claims from the attributes cached on the user."""
    claims = {}
    for key in (SHORT_NAME_ATTRIBUTE, PROJECTS_ATTRIBUTE):
        value = user.get_first_attribute(key)
        if value is not None:
            claims[key] = value
    return claims


class TokenClaimsMapper:
    """
    Maps the remote authorization record onto token claims.

    Unlike the login decision, an overlong short name does not fail: the
    claims are cleared instead. Whenever the service cannot be used or the
    user is not active, the cached attributes are used.
    """

    def __init__(self,
                 config: "GateConfig",
                 store: AttributeStore,
                 client: Optional[AuthorizationService] = None):
        self.config = config
        self.store = store
        self.client = client or AuthorizationClient(timeout=config.authorization_timeout)

    async def map_claims(self, user: UserRecord) -> Dict[str, str]:
        email = normalise_email(user.email)
        if not email:
            logger.warning(f"User {user.username or user.id} has no email address, cannot fetch projects")
            return {}

        if not self.config.authorization_configured:
            logger.warning("Authorization service URL or key not configured, using cached claims")
            return cached_claims(user)

        record = await self.client.fetch(
            email, self.config.authorization_url, self.config.authorization_key
        )

        if record.status != STATUS_ACTIVE:
            logger.warning(f"{email} is not active (status: {record.status!r}), using cached claims")
            return cached_claims(user)

        try:
            short_name, projects = derive_cached_attributes(record)
        except ShortNameTooLong as e:
            logger.warning(f"{email}: {e}, clearing claims")
            short_name, projects = "", "{}"

        await set_if_changed(self.store, user, SHORT_NAME_ATTRIBUTE, short_name)
        await set_if_changed(self.store, user, PROJECTS_ATTRIBUTE, projects)

        return {SHORT_NAME_ATTRIBUTE: short_name, PROJECTS_ATTRIBUTE: projects}
