# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Client for the remote authorization service.

The service is asked ``GET <endpoint>?email=<email>`` with an
``Authorization: Token <key>`` header and answers with a JSON
authorization record. The client never raises: every failure is returned
as a record with status ``""`` and a fixed reason.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

import aiohttp

from ..metrics import GateMetrics
from .types import AuthorizationRecord


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class AuthorizationService(ABC):
    """Source of authorization records."""

    @abstractmethod
    async def fetch(self, email: Optional[str], endpoint: Optional[str],
                    api_key: Optional[str]) -> AuthorizationRecord:
        """
        Fetch the authorization record for an email.

        Returns:
            AuthorizationRecord: The record, or a failure record
        """
        pass


class AuthorizationClient(AuthorizationService):
    """aiohttp implementation of the authorization service."""

    def __init__(self,
                 timeout: float = DEFAULT_TIMEOUT_SECONDS,
                 session: Optional[aiohttp.ClientSession] = None,
                 metrics: Optional[GateMetrics] = None):
        """
        Initialize the client.

        Args:
            timeout: Total time allowed for one lookup, in seconds
            session: Shared ClientSession (a new one is opened per call if None)
            metrics: Optional metrics collector
        """
        if timeout is None or timeout <= 0:
            raise ValueError("timeout must be a positive number of seconds")

        self.timeout = timeout
        self.session = session
        self.metrics = metrics

    async def fetch(self, email: Optional[str], endpoint: Optional[str],
                    api_key: Optional[str]) -> AuthorizationRecord:
        if not email or not endpoint or not api_key:
            logger.warning("Authorization lookup skipped: email, endpoint or key missing")
            return AuthorizationRecord.failed("missing input")

        if self.metrics:
            with self.metrics.time_fetch() as labels:
                record = await self._fetch(email, endpoint, api_key)
                labels["result"] = "failure" if record.is_failure else "ok"
            return record

        return await self._fetch(email, endpoint, api_key)

    async def _fetch(self, email: str, endpoint: str, api_key: str) -> AuthorizationRecord:
        session_created = False
        session = self.session
        if session is None:
            session = aiohttp.ClientSession()
            session_created = True

        try:
            async with session.get(
                endpoint,
                params={'email': email},
                headers={'Authorization': f"Token {api_key}"},
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                if response.status != 200:
                    body = await response.text(errors="replace")
                    logger.warning(f"Authorization API call failed: {response.status} {body[:200]}")
                    return AuthorizationRecord.failed(f"HTTP {response.status}")

                try:
                    data = await response.json(content_type=None)
                    return AuthorizationRecord.from_dict(data)
                except (aiohttp.ContentTypeError, ValueError, TypeError) as e:
                    logger.warning(f"Decoding authorization response failed: {e}")
                    return AuthorizationRecord.failed(f"decode error: {e}")

        except asyncio.TimeoutError:
            logger.warning(f"Authorization API call timed out after {self.timeout} seconds")
            return AuthorizationRecord.failed("timeout")

        except aiohttp.ClientError as e:
            logger.warning(f"Authorization API call failed: {e}")
            return AuthorizationRecord.failed(f"transport error: {e}")

        except Exception as e:
            logger.error(f"Unexpected error calling authorization API: {e}")
            return AuthorizationRecord.failed(f"unexpected error: {e}")

        finally:
            if session_created:
                await session.close()
