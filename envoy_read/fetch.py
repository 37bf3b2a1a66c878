import logging
from functools import partial

import httpx


# Fetch the config dump from the envoy admin API
def fetch_raw_config(admin_api, path="/config_dump?include_eds", timeout=5.0):
    """
    Fetches the raw ``/config_dump`` body from an Envoy admin API.

    The body is returned undecoded so it can be passed through verbatim in
    raw mode. Transport and HTTP status errors are logged and re-raised as
    the ``httpx`` exception that caused them.

    :param admin_api: Base URL of the admin API, e.g. ``http://localhost:19000``.
    :type admin_api: str
    :param path: Path and query of the dump endpoint. ``include_eds`` adds
        the endpoints section.
    :type path: str
    :param timeout: Request timeout in seconds.
    :type timeout: float
    :return: The response body.
    :rtype: bytes
    :raises httpx.HTTPError: If the request fails or returns an error status.
    """
    url = f"{admin_api.rstrip('/')}{path}"
    try:
        response = httpx.get(url, timeout=timeout)
        response.raise_for_status()
    except httpx.HTTPError as err:
        logging.error(f"Request to {url} failed: {err}")
        raise
    logging.debug(f"Fetched {len(response.content)} bytes from {url}")
    return response.content


def read_raw_file(path):
    """Reads a config dump previously saved to disk."""
    with open(path, "rb") as f:
        return f.read()


def admin_api_fetcher(settings, admin_api=None):
    """Binds ``fetch_raw_config`` to the configured admin API."""
    return partial(
        fetch_raw_config,
        admin_api or settings.admin_api,
        settings.config_dump_path,
        settings.timeout,
    )
