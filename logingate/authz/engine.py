# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Authorization decision engine for the login gate.

Rules are evaluated in a fixed order and the first decisive rule wins:

  1. membership of an allowed group
  2. missing email
  3. banned email
  4. allowed email
  5. the record returned by the remote authorization service
"""

import json
import logging
from typing import Dict, List, Optional, Tuple, TYPE_CHECKING

from ..errors import ErrorCategory, LoginGateError
from ..matching import first_match
from ..metrics import GateMetrics
from ..store import AttributeStore, UserRecord, StorageError
from .client import AuthorizationService, AuthorizationClient
from .types import (
    AuthorizationRecord, LoginVerdict, VerdictCode, STATUS_ACTIVE, STATUS_INVITED
)

if TYPE_CHECKING:
    from ..core.config import GateConfig


logger = logging.getLogger(__name__)

SHORT_NAME_ATTRIBUTE = "short_name"
PROJECTS_ATTRIBUTE = "projects"
MAX_SHORT_NAME_LENGTH = 128

MISSING_EMAIL_REASON = "Your account has no email address, so you cannot log in."
BANNED_REASON = "This email address is not permitted to log in."
PENDING_REVIEW_REASON = "Your account is awaiting review before you can log in."
NOT_AUTHORIZED_REASON = "Not in an approved list"


class ShortNameTooLong(ValueError):
    """The remote service returned a short name longer than allowed."""
    pass


def normalise_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def normalise_domain_globs(globs: List[str]) -> List[str]:
    """Lower-case domain globs to match the normalised email domain."""
    return [glob.lower() for glob in globs]


def normalise_short_name(short_name: Optional[str]) -> Optional[str]:
    """
    Trim a short name from the remote service.

    Returns:
        The short name, or None if it is empty or ``none``

    Raises:
        ShortNameTooLong: if it is longer than MAX_SHORT_NAME_LENGTH
    """
    if short_name is None:
        return None

    short_name = short_name.strip()
    if not short_name or short_name.lower() == "none":
        return None

    if len(short_name) > MAX_SHORT_NAME_LENGTH:
        raise ShortNameTooLong(
            f"short_name is {len(short_name)} characters, at most {MAX_SHORT_NAME_LENGTH} allowed"
        )

    return short_name


def serialise_projects(record: AuthorizationRecord) -> str:
    """Serialise the record's projects as compact JSON."""
    return json.dumps(record.projects_to_dict(), separators=(",", ":"))


def derive_cached_attributes(record: AuthorizationRecord) -> Tuple[str, str]:
    """
    Derive the cached short_name and projects values from an active record.

    A missing short name clears the projects.

    Raises:
        ShortNameTooLong: if the short name is too long
    """
    short_name = normalise_short_name(record.short_name)
    if short_name is None:
        return "", "{}"
    return short_name, serialise_projects(record)


async def set_if_changed(store: AttributeStore, user: UserRecord, key: str, value: str) -> bool:
    """
    Write a single-valued attribute unless it already holds value.

    Returns:
        bool: True if a write was made
    """
    if user.get_first_attribute(key) == value:
        return False

    await store.set_single_attribute(user.id, key, value)
    user.attributes[key] = [value]
    return True


async def clear_cached_attributes(store: AttributeStore, user: UserRecord) -> None:
    """Remove the cached short_name and projects attributes if present."""
    for key in (SHORT_NAME_ATTRIBUTE, PROJECTS_ATTRIBUTE):
        if key in user.attributes:
            await store.remove_attribute(user.id, key)
            del user.attributes[key]


class AuthorizationDecisionEngine:
    """
    Decides whether a user may log in.

    The only side effects are the idempotent writes and removals of the
    cached short_name and projects attributes.
    """

    def __init__(self,
                 config: "GateConfig",
                 store: AttributeStore,
                 client: Optional[AuthorizationService] = None,
                 metrics: Optional[GateMetrics] = None):
        """
        Initialize the engine.

        Args:
            config: Gate configuration
            store: Attribute store holding the cached attributes
            client: Source of authorization records
            metrics: Optional metrics collector
        """
        self.config = config
        self.store = store
        self.client = client or AuthorizationClient(
            timeout=config.authorization_timeout, metrics=metrics
        )
        self.metrics = metrics

    async def evaluate(self, user: UserRecord) -> LoginVerdict:
        """
        Evaluate the login rules for a user.

        Never raises; storage failures become an INTERNAL_ERROR verdict.
        """
        try:
            verdict = await self._evaluate(user)
        except (StorageError, LoginGateError) as e:
            logger.error(f"[LOGIN FAILED] Error evaluating user {user.id}: {e}")
            verdict = LoginVerdict.internal_error(
                VerdictCode.INTERNAL_FAILURE, self.config.support_contact
            )

        if self.metrics:
            self.metrics.record_verdict(verdict.kind.value, verdict.code.value)

        return verdict

    async def _evaluate(self, user: UserRecord) -> LoginVerdict:
        support = self.config.support_contact

        group = self._allowed_group(user)
        if group is not None:
            logger.info(f"[LOGIN SUCCESS] User {user.id} is in group {group} and is allowed to log in")
            return LoginVerdict.allow(VerdictCode.ALLOWED_GROUP)

        email = normalise_email(user.email)
        if not email:
            logger.warning(f"[LOGIN FAILED] User {user.username or user.id} has no email address")
            return LoginVerdict.deny(
                VerdictCode.MISSING_EMAIL, MISSING_EMAIL_REASON, support, ErrorCategory.USER_INPUT
            )

        if email in {normalise_email(e) for e in self.config.banned_emails}:
            logger.warning(f"[LOGIN FAILED] {email} is banned from logging in")
            return LoginVerdict.deny(VerdictCode.BANNED, BANNED_REASON, support)

        if email in {normalise_email(e) for e in self.config.allowed_emails}:
            logger.info(f"[LOGIN SUCCESS] {email} is directly allowed to log in")
            return LoginVerdict.allow(VerdictCode.ALLOWED_EMAIL)

        record = await self.client.fetch(
            email, self.config.authorization_url, self.config.authorization_key
        )

        if record.status == STATUS_ACTIVE:
            return await self._evaluate_active(user, email, record)

        if record.status == STATUS_INVITED:
            return await self._evaluate_invited(user, email, record)

        await clear_cached_attributes(self.store, user)

        if record.is_failure:
            logger.warning(f"[LOGIN FAILED] {email}: authorization service unavailable ({record.failure})")
            return LoginVerdict.deny(
                VerdictCode.UPSTREAM_FAILURE, record.reason, support, ErrorCategory.UPSTREAM_FAILURE
            )

        reason = record.reason.strip() or NOT_AUTHORIZED_REASON
        logger.warning(f"[LOGIN FAILED] {email} is not authorised to log in: {reason}")
        return LoginVerdict.deny(VerdictCode.NOT_AUTHORIZED, reason, support)

    def _allowed_group(self, user: UserRecord) -> Optional[str]:
        allowed = set(self.config.allowed_groups)
        for group in user.groups:
            name = (group or "").strip()
            if name in allowed:
                return name
        return None

    async def _evaluate_active(self, user: UserRecord, email: str,
                               record: AuthorizationRecord) -> LoginVerdict:
        try:
            short_name, projects = derive_cached_attributes(record)
        except ShortNameTooLong as e:
            logger.warning(f"[LOGIN FAILED] {email} is authorised to log in, but {e}")
            return LoginVerdict.internal_error(
                VerdictCode.SHORT_NAME_TOO_LONG, self.config.support_contact
            )

        if short_name:
            logger.info(f"[LOGIN SUCCESS] {email} is authorised with short name {short_name} and projects {projects}")
        else:
            logger.info(f"[LOGIN SUCCESS] {email} is authorised, but has not set a short name")

        await set_if_changed(self.store, user, SHORT_NAME_ATTRIBUTE, short_name)
        await set_if_changed(self.store, user, PROJECTS_ATTRIBUTE, projects)

        attributes: Dict[str, str] = {
            SHORT_NAME_ATTRIBUTE: short_name,
            PROJECTS_ATTRIBUTE: projects,
        }
        return LoginVerdict.allow(VerdictCode.ALLOWED_ACTIVE, attributes)

    async def _evaluate_invited(self, user: UserRecord, email: str,
                                record: AuthorizationRecord) -> LoginVerdict:
        support = self.config.support_contact

        await clear_cached_attributes(self.store, user)

        domain = email.split("@", 1)[1] if "@" in email else email

        glob = first_match(normalise_domain_globs(self.config.uninvitable_domains), domain)
        if glob is not None:
            logger.warning(f"[LOGIN FAILED] {email} needs review to log in from matched domain {glob}")
            return LoginVerdict.deny(
                VerdictCode.PENDING_REVIEW, PENDING_REVIEW_REASON, support, inviter=record.invited_by
            )

        glob = first_match(normalise_domain_globs(self.config.invitable_domains), domain)
        if glob is not None:
            logger.info(f"[LOGIN SUCCESS] {email} is allowed to log in when invited from matched domain {glob}")
            return LoginVerdict.allow(VerdictCode.ALLOWED_INVITED_DOMAIN)

        logger.warning(f"[LOGIN FAILED] {email} needs review to log in from unmatched domain {domain}")
        return LoginVerdict.deny(
            VerdictCode.PENDING_REVIEW, PENDING_REVIEW_REASON, support, inviter=record.invited_by
        )
