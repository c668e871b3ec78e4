# coding: utf-8

"""
Attendance Service Client

REST client for the attendance backend: template registration, descriptor
matching and the present-list query. All transport and protocol failures
are raised as ServiceUnavailableError so callers deal with one failure type.

Key Features:
    - Shared requests session with configurable timeout
    - Batch descriptor matching (one request per frame)
    - Roster hydration from the present list
    - Error handling and logging
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import requests

from .errors import ServiceResponseError, ServiceUnavailableError
from .models import MatchResult, RegistrationResponse, RosterEntry, Template

DEFAULT_PATHS = {
    'register': '/api/register',
    'match': '/api/recognize',
    'roster': '/api/present',
}

LEGACY_DATETIME_FORMAT = '%d-%m-%Y %H:%M:%S'


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 or ``d-m-Y H:M:S`` timestamp; None when absent or unreadable"""
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.strptime(text, LEGACY_DATETIME_FORMAT)
    except ValueError:
        return None


class AttendanceServiceClient:
    """
    Attendance Service Client

    Args:
        base_url: Backend root, e.g. "http://localhost:5000"
        timeout: Per-request timeout in seconds
        session: Optional pre-configured requests.Session
        paths: Overrides for the register/match/roster endpoint paths
        logger: Optional logger instance
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        paths: Optional[Dict[str, str]] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.paths = {**DEFAULT_PATHS, **(paths or {})}
        self.logger = logger or logging.getLogger(__name__)

    def _url(self, name: str) -> str:
        return f"{self.base_url}{self.paths[name]}"

    def _request(self, method: str, name: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        url = self._url(name)
        try:
            response = self.session.request(method, url, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            self.logger.error(f"{method} {url} failed: {e}")
            raise ServiceUnavailableError(f"Attendance service unreachable: {e}") from e

        if response.status_code >= 400:
            detail = self._error_detail(response)
            self.logger.error(f"{method} {url} returned {response.status_code}: {detail}")
            raise ServiceUnavailableError(
                f"Attendance service error {response.status_code}: {detail}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ServiceResponseError(
                f"Invalid JSON from {url}", status_code=response.status_code
            ) from e

    @staticmethod
    def _error_detail(response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:200]
        if isinstance(body, dict):
            return str(body.get('message') or body.get('error') or body)
        return str(body)

    def register(self, template: Template) -> RegistrationResponse:
        """Submit an enrollment template"""
        body = self._request('POST', 'register', template.to_payload())
        if not isinstance(body, dict) or 'success' not in body:
            raise ServiceResponseError(f"Unexpected registration response: {body!r}")
        result = RegistrationResponse(
            success=bool(body['success']),
            message=str(body.get('message', '')),
        )
        self.logger.info(
            f"Registration of '{template.identity_key}': success={result.success} {result.message}"
        )
        return result

    def match(self, descriptors: Sequence[Sequence[float]]) -> List[MatchResult]:
        """Match a batch of descriptors; one result per descriptor, same order"""
        payload = {'descriptors': [list(d) for d in descriptors]}
        body = self._request('POST', 'match', payload)
        results = body.get('results') if isinstance(body, dict) else None
        if not isinstance(results, list):
            raise ServiceResponseError(f"Match response has no results list: {body!r}")
        if len(results) != len(descriptors):
            raise ServiceResponseError(
                f"Match response has {len(results)} results for {len(descriptors)} descriptors"
            )

        parsed = []
        for item in results:
            if not isinstance(item, dict):
                raise ServiceResponseError(f"Invalid match result: {item!r}")
            matched = item.get('matched')
            if not isinstance(matched, bool):
                raise ServiceResponseError(f"Match result 'matched' is not a boolean: {item!r}")
            key = item.get('identityKey')
            parsed.append(MatchResult(
                matched=matched,
                identity_key=str(key) if matched and key is not None else None,
                display_name=item.get('displayName') if matched else None,
            ))
        return parsed

    def fetch_roster(self) -> List[RosterEntry]:
        """Load the backend's present list for roster hydration"""
        body = self._request('GET', 'roster')
        if isinstance(body, dict):
            body = body.get('roster', body.get('results'))
        if not isinstance(body, list):
            raise ServiceResponseError(f"Roster response is not a list: {body!r}")

        entries = []
        for item in body:
            entry = self._parse_roster_item(item)
            if entry is None:
                self.logger.warning(f"Skipping roster item without identity: {item!r}")
                continue
            entries.append(entry)
        self.logger.info(f"Fetched {len(entries)} roster entries")
        return entries

    @staticmethod
    def _parse_roster_item(item: Any) -> Optional[RosterEntry]:
        if not isinstance(item, dict):
            return None
        # Student-list backends report roll/name/profileImage/status.present/dateTime
        key = item.get('identityKey', item.get('roll'))
        if key is None or str(key).strip() == '':
            return None
        status = item.get('status') if isinstance(item.get('status'), dict) else {}
        present = item.get('present', status.get('present', False))
        return RosterEntry(
            identity_key=str(key),
            display_name=str(item.get('displayName', item.get('name', ''))),
            present=bool(present),
            timestamp=parse_timestamp(item.get('timestamp', item.get('dateTime'))),
            image_url=item.get('imageUrl', item.get('profileImage')),
        )

    def close(self):
        self.session.close()
