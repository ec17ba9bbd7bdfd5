import random
import time

import requests

from config import HTTP_RETRIES, HTTP_TIMEOUT, USER_AGENT
from observability import log_event
from runtime_metrics import METRICS

RETRYABLE = {429, 500, 502, 503, 504}


def _backoff_sleep(attempt: int):
    backoff = (2 ** attempt) * 0.25 + random.uniform(0.05, 0.2)
    time.sleep(backoff)


def _with_user_agent(headers):
    merged = {"User-Agent": USER_AGENT}
    merged.update(headers or {})
    return merged


def _request_without_proxy(method: str, url: str, timeout: float, **kwargs):
    # Bypass env/system proxy settings for networks whose proxy blocks the HTTPS tunnel.
    with requests.Session() as session:
        session.trust_env = False
        return session.request(
            method,
            url,
            timeout=timeout,
            proxies={"http": None, "https": None},
            **kwargs,
        )


def request_with_retry(method: str, url: str, **kwargs):
    """
    Send a request, retrying connection errors and 429/5xx responses.

    Authentication must be given as a requests auth hook (``auth=``) rather
    than a pre-built header: requests re-applies the hook on every attempt, so
    each retry carries a freshly signed Authorization header.
    """
    timeout = kwargs.pop("timeout", HTTP_TIMEOUT)
    retries = kwargs.pop("retries", HTTP_RETRIES)
    kwargs["headers"] = _with_user_agent(kwargs.get("headers"))

    last_exc = None
    for attempt in range(retries + 1):
        METRICS.request_count += 1
        try:
            response = requests.request(method, url, timeout=timeout, **kwargs)
        except requests.exceptions.ProxyError:
            # One immediate direct attempt per retry iteration without proxy.
            try:
                response = _request_without_proxy(method, url, timeout=timeout, **kwargs)
            except requests.RequestException as err:
                last_exc = err
                if attempt >= retries:
                    raise
                log_event("http.retry", method=method, attempt=attempt + 1, error=type(err).__name__)
                _backoff_sleep(attempt)
                continue
        except requests.RequestException as err:
            last_exc = err
            if attempt >= retries:
                raise
            log_event("http.retry", method=method, attempt=attempt + 1, error=type(err).__name__)
            _backoff_sleep(attempt)
            continue

        if response.status_code in RETRYABLE and attempt < retries:
            log_event("http.retry", method=method, attempt=attempt + 1, status=response.status_code)
            _backoff_sleep(attempt)
            continue

        response.raise_for_status()
        return response

    if last_exc:
        raise last_exc
    raise RuntimeError("request_with_retry failed unexpectedly")
