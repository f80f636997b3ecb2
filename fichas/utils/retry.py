"""Retry decorators for outbound HTTP calls."""

import logging

import requests
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    before_sleep_log,
)

logger = logging.getLogger(__name__)

# Transport-level failures only; HTTP error statuses are not retried
http_retry = retry(
    retry=retry_if_exception_type(
        (requests.ConnectionError, requests.Timeout)
    ),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
    stop=stop_after_attempt(3),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
