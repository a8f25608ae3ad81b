#!/usr/bin/env python3

"""
Identifier Resolver for XPlane-Arduino-Bridge
Resolves dataref and command names to the numeric ids used by the
X-Plane web API session, caching every successful lookup for the
lifetime of the process.

Part of the XPlane-Arduino-Bridge project.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

import requests

logger = logging.getLogger('resolver')


class IdentifierCategory(str, Enum):
    """Kind of X-Plane identifier (also the REST collection name)"""
    DATAREFS = 'datarefs'
    COMMANDS = 'commands'


class LookupFailed(Exception):
    """Raised when a live dataref value can't be read"""


class IdentifierResolver:
    """
    Looks up X-Plane identifiers through the REST API.

    Resolved ids never change during a simulator session, so they are
    cached forever. Failed lookups are not cached and are retried on
    the next access.
    """
    def __init__(self,
                 rest_url: str,
                 session: Optional[requests.Session] = None,
                 timeout: Optional[float] = None):
        """
        Initialize the resolver.

        Args:
            rest_url: Base URL of the REST API (e.g. http://localhost:8086/api/v2)
            session: HTTP session to use (a new one is created if omitted)
            timeout: HTTP timeout in seconds (None waits forever)
        """
        self.rest_url = rest_url.rstrip('/')
        self.http = session or requests.Session()
        self.timeout = timeout or None

        self.cache: Dict[IdentifierCategory, Dict[str, int]] = {
            IdentifierCategory.DATAREFS: {},
            IdentifierCategory.COMMANDS: {},
        }

        # Statistics
        self.lookups = 0
        self.error_count = 0

    async def resolve(self, category: IdentifierCategory, name: str) -> Optional[int]:
        """
        Resolve a name to its session id.

        Args:
            category: Dataref or command
            name: X-Plane name (e.g. "sim/cockpit2/switches/beacon_on")

        Returns:
            int or None: The id, or None if not found or the lookup failed
        """
        category = IdentifierCategory(category)
        cached = self.cache[category].get(name)
        if cached is not None:
            return cached

        loop = asyncio.get_running_loop()
        identifier = await loop.run_in_executor(None, self._lookup, category, name)

        if identifier is not None:
            self.cache[category][name] = identifier
        return identifier

    async def resolve_all(self, category: IdentifierCategory,
                          names: Iterable[str]) -> Optional[List[int]]:
        """
        Resolve several names, one lookup at a time.

        Returns:
            list or None: Ids in the same order, or None if any name failed
        """
        ids = []
        for name in names:
            identifier = await self.resolve(category, name)
            if identifier is None:
                return None
            ids.append(identifier)
        return ids

    def name_for_id(self, category: IdentifierCategory, identifier: int) -> Optional[str]:
        """Reverse lookup of a cached id."""
        for name, cached_id in self.cache[IdentifierCategory(category)].items():
            if cached_id == identifier:
                return name
        return None

    def cached_count(self, category: IdentifierCategory) -> int:
        return len(self.cache[IdentifierCategory(category)])

    async def read_value(self, identifier: int) -> Any:
        """
        Read the current value of a dataref.

        Args:
            identifier: Resolved dataref id

        Returns:
            The dataref value as returned by X-Plane

        Raises:
            LookupFailed: If the value can't be fetched
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._fetch_value, identifier)

    def _lookup(self, category: IdentifierCategory, name: str) -> Optional[int]:
        """Blocking REST lookup, runs in the executor."""
        url = f"{self.rest_url}/{category.value}"
        self.lookups += 1

        try:
            response = self.http.get(url, params={'filter[name]': name}, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Error fetching {category.value} \"{name}\" ID: {e}")
            self.error_count += 1
            return None

        matches = payload.get('data') if isinstance(payload, dict) else None
        if not matches:
            logger.warning(f"{category.value} \"{name}\" not found in X-Plane API")
            return None

        try:
            identifier = int(matches[0]['id'])
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Malformed {category.value} lookup result for \"{name}\": {e}")
            self.error_count += 1
            return None

        logger.info(f"Found {category.value} \"{name}\" ID: {identifier}")
        return identifier

    def _fetch_value(self, identifier: int) -> Any:
        url = f"{self.rest_url}/{IdentifierCategory.DATAREFS.value}/{identifier}/value"

        try:
            response = self.http.get(url, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            self.error_count += 1
            raise LookupFailed(f"Error reading dataref {identifier}: {e}") from e

        if not isinstance(payload, dict) or 'data' not in payload:
            self.error_count += 1
            raise LookupFailed(f"Unexpected value payload for dataref {identifier}: {payload!r}")

        return payload['data']
