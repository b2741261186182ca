"""
HTTP client for the Mealie backup API.

Wraps the five admin/util endpoints used by the backup workflow:
- GET    /api/admin/backups          list backups
- POST   /api/admin/backups          create a backup (blocks until done)
- GET    /api/admin/backups/{name}   issue a single-use download token
- DELETE /api/admin/backups/{name}   delete a backup
- GET    /api/utils/download         download an archive by token
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests
from requests.exceptions import RequestException

from .errors import DecodeError, NotFoundError, TransportError, ValidationError
from .models import BackupCatalog, FieldViolation, SuccessResult


logger = logging.getLogger(__name__)

BACKUPS_PATH = '/api/admin/backups'
DOWNLOAD_PATH = '/api/utils/download'


class BackupClient:
    """
    Authenticated access to the server's backup endpoints.

    Holds only the base URL, the bearer key and an optional timeout; every
    call is an independent request, so one instance can be shared freely.
    Nothing is retried.
    """

    def __init__(self, base_url: str, api_key: str, timeout: Optional[float] = None):
        """
        Initialize backup client.

        Args:
            base_url: Server root, e.g. https://mealie.example.com
            api_key: API token sent as a bearer credential
            timeout: Per-request timeout in seconds (default: none)
        """
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.timeout = timeout

    def list_backups(self, accept_language: Optional[str] = None) -> BackupCatalog:
        """
        Fetch all backups known to the server.

        Raises:
            TransportError: On network failure or non-2xx status
            DecodeError: If the body is not a backup catalog
        """
        response = self._request('GET', BACKUPS_PATH, 'list_backups',
                                 headers=self._headers(accept_language))
        return BackupCatalog.from_dict(self._json(response, 'list_backups'))

    def create_backup(self, accept_language: Optional[str] = None) -> SuccessResult:
        """
        Ask the server to create a backup.

        The server answers once the backup job has finished. A result with
        error=True is returned as-is, not raised.
        """
        response = self._request('POST', BACKUPS_PATH, 'create_backup',
                                 headers=self._headers(accept_language))
        return SuccessResult.from_dict(self._json(response, 'create_backup'), 'create_backup')

    def request_download_token(self, name: str, accept_language: Optional[str] = None) -> str:
        """
        Get a single-use download token for a backup.

        Raises:
            NotFoundError: If the server has no backup with that name
            DecodeError: If the body carries no usable token
        """
        operation = 'request_download_token'
        response = self._request('GET', self._backup_path(name), operation,
                                 headers=self._headers(accept_language), backup_name=name)
        payload = self._json(response, operation, backup_name=name)
        token = payload.get('fileToken') if isinstance(payload, dict) else None
        if not isinstance(token, str) or not token:
            raise DecodeError("Response carries no fileToken", operation=operation, backup_name=name)
        return token

    def download_by_token(self, token: str) -> bytes:
        """
        Download an archive using a token from request_download_token().

        The download endpoint needs no bearer credential.

        Raises:
            ValidationError: If the server rejects the token with field errors
            DecodeError: If the token is empty
            TransportError: On network failure or any other failed status
        """
        if not token:
            raise DecodeError("Download token must not be empty", operation='download_by_token')

        operation = 'download_by_token'
        try:
            response = requests.request(
                'GET',
                self.base_url + DOWNLOAD_PATH,
                params={'token': token},
                timeout=self.timeout
            )
        except RequestException as e:
            raise TransportError(f"Download request failed: {e}", operation=operation) from e

        if response.ok:
            return response.content

        violations = _parse_violations(response, operation)
        if violations is not None:
            raise ValidationError(violations, operation=operation, status_code=response.status_code)

        raise _status_error(response, operation)

    def delete_backup(self, name: str, accept_language: Optional[str] = None) -> SuccessResult:
        """Delete a backup from the server."""
        operation = 'delete_backup'
        response = self._request('DELETE', self._backup_path(name), operation,
                                 headers=self._headers(accept_language), backup_name=name)
        return SuccessResult.from_dict(self._json(response, operation, backup_name=name), operation)

    def _headers(self, accept_language: Optional[str]) -> Dict[str, str]:
        headers = {'Authorization': f"Bearer {self.api_key}"}
        if accept_language:
            headers['Accept-Language'] = accept_language
        return headers

    def _backup_path(self, name: str) -> str:
        return f"{BACKUPS_PATH}/{quote(name, safe='')}"

    def _request(self, method: str, path: str, operation: str,
                 headers: Dict[str, str], backup_name: Optional[str] = None) -> requests.Response:
        url = self.base_url + path
        logger.debug(f"{method} {url}")

        try:
            response = requests.request(method, url, headers=headers, timeout=self.timeout)
        except RequestException as e:
            raise TransportError(
                f"{method} {path} failed: {e}",
                operation=operation,
                backup_name=backup_name
            ) from e

        if not response.ok:
            raise _status_error(response, operation, backup_name)

        return response

    def _json(self, response: requests.Response, operation: str, backup_name: Optional[str] = None) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(
                f"Response is not valid JSON: {e}",
                operation=operation,
                backup_name=backup_name
            ) from e


def _parse_violations(response: requests.Response, operation: str):
    """Return the field violations of a validation payload, or None if the body is not one."""
    try:
        payload = response.json()
    except ValueError:
        return None

    detail = payload.get('detail') if isinstance(payload, dict) else None
    if not isinstance(detail, list):
        return None

    try:
        return [FieldViolation.from_dict(item, operation) for item in detail]
    except DecodeError:
        return None


def _status_error(response: requests.Response, operation: str, backup_name: Optional[str] = None) -> TransportError:
    status = response.status_code
    reason = _error_detail(response)
    message = f"HTTP {status} from {operation}"
    if reason:
        message = f"{message}: {reason}"

    error_class = NotFoundError if status == 404 else TransportError
    return error_class(message, operation=operation, backup_name=backup_name, status_code=status)


def _error_detail(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return (response.text or response.reason or '')[:200]

    if isinstance(payload, dict):
        detail = payload.get('detail')
        if isinstance(detail, dict):
            return str(detail.get('message') or detail)
        if detail:
            return str(detail)
    return str(payload)[:200]
