# gpswox_hub/operations/probing.py
"""
Endpoint probing for undocumented GPSwox routes.

Drivers and position history are served from different paths depending on
the GPSwox version and on how the server was deployed. Both fetchers
therefore try an ordered list of candidate URLs and keep the first one that
yields data. This module holds the one combinator that does so.

A candidate is skipped, never fatal, when:
- the body carries a 404 marker ('"statusCode":404', 'not be found') or the
  HTTP status is 404
- the body is not valid JSON
- the request fails at the transport level (single attempt, short timeout)
- the payload does not match any accepted shape

Every step is appended to a caller-owned probe log so the HTTP response can
show which candidates were tried for that request. The session token is
masked in every log line.
"""

import logging
from collections.abc import Callable, Iterable, Sequence
from typing import Any, Final
from urllib.parse import quote

import httpx

from gpswox_hub.client import GpswoxClient, GpswoxError, decode_json

__all__: list[str] = [
    'NOT_FOUND_MARKERS',
    'build_candidate_urls',
    'looks_not_found',
    'probe_candidates',
    'redact_token',
]

logger: logging.Logger = logging.getLogger(__name__)

NOT_FOUND_MARKERS: Final[tuple[str, ...]] = ('"statusCode":404', 'not be found')

# Characters of a candidate response echoed into the probe log
RESPONSE_PREVIEW_LENGTH: Final[int] = 150

# Template fields inserted verbatim; every other value is URL-quoted
UNQUOTED_FIELDS: Final[frozenset[str]] = frozenset({'base_url', 'root_url'})

PROBE_ATTEMPTS: Final[int] = 1


def build_candidate_urls(templates: Iterable[str], **values: Any) -> list[str]:
    """
    Expand URL templates into concrete candidate URLs.

    Args:
        templates: Format strings using the placeholders allowed by
            EndpointCandidatesConfig.
        **values: Placeholder values. base_url and root_url are inserted
            as-is, all others are percent-encoded.

    Returns:
        One URL per template, in template order.

    Example:
        >>> build_candidate_urls(
        ...     ['{base_url}/history?from={date_from}'],
        ...     base_url='https://t.example.com/api',
        ...     date_from='2025-01-01 00:00:00',
        ... )
        ['https://t.example.com/api/history?from=2025-01-01%2000%3A00%3A00']
    """
    encoded: dict[str, str] = {
        name: str(value) if name in UNQUOTED_FIELDS else quote(str(value), safe='')
        for name, value in values.items()
    }
    return [template.format(**encoded) for template in templates]


def redact_token(text: str, token: str | None) -> str:
    """Replace every occurrence of the session token with '***'."""
    if not token:
        return text
    return text.replace(token, '***').replace(quote(token, safe=''), '***')


def looks_not_found(response: httpx.Response) -> bool:
    """True when the response is a 404, by status code or by body marker."""
    if response.status_code == httpx.codes.NOT_FOUND:
        return True
    return any(marker in response.text for marker in NOT_FOUND_MARKERS)


async def probe_candidates[T](
    client: GpswoxClient,
    urls: Sequence[str],
    accept: Callable[[Any], T | None],
    timeout_seconds: float,
    probe_log: list[str] | None = None,
    label: str = 'endpoint',
    token: str | None = None,
) -> T | None:
    """
    Try candidate URLs in order and return the first accepted payload.

    Args:
        client: HTTP client; each candidate gets exactly one attempt.
        urls: Candidate URLs in priority order.
        accept: Maps a decoded JSON payload to a result, or None to reject
            it and move on.
        timeout_seconds: Per-candidate timeout.
        probe_log: Optional list receiving one line per probing step.
        label: Name used in log lines ('drivers', 'history', 'events').
        token: Session token to mask in log lines.

    Returns:
        The first non-None result of `accept`, or None when every candidate
        was skipped.
    """
    log_lines: list[str] = probe_log if probe_log is not None else []

    def record(message: str) -> None:
        safe_message: str = redact_token(message, token)
        log_lines.append(safe_message)
        logger.debug(safe_message)

    for url in urls:
        record(f'Trying {label} URL: {url}')

        try:
            response: httpx.Response = await client.fetch_with_retry(
                url,
                max_retries=PROBE_ATTEMPTS,
                timeout_seconds=timeout_seconds,
            )
        except GpswoxError as error:
            record(f'Endpoint failed: {error}')
            continue

        record(f'Response start: {response.text[:RESPONSE_PREVIEW_LENGTH]}')

        if looks_not_found(response):
            record('Endpoint not found (404)')
            continue

        try:
            payload: Any = decode_json(response.text)
        except GpswoxError:
            record('Failed to parse JSON')
            continue

        result: T | None = accept(payload)
        if result is None:
            if isinstance(payload, dict):
                record(
                    f'Got object with status {payload.get("status")} '
                    f'and message: {payload.get("message")}'
                )
            else:
                record(f'Got {type(payload).__name__} without usable items')
            continue

        if isinstance(result, list):
            record(f'Accepted {label} payload with {len(result)} items')
        return result

    return None
