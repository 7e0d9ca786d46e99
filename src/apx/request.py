"""HTTP helpers for the atom.io registry and the GitHub API.

Requests go through ``httpx.AsyncClient`` and honour npm's configured proxy,
which is looked up once per process via ``npm config list --json``.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Optional

import httpx
from loguru import logger

from .constants import HTTP_TIMEOUT_SECONDS, HTTP_USER_AGENT


_npm_proxy_known = False
_npm_proxy: Optional[str] = None


async def _npm_config() -> dict[str, Any]:
    proc = await asyncio.create_subprocess_exec(
        "npm", "config", "list", "--json",
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.DEVNULL,
    )
    stdout, _ = await proc.communicate()
    if proc.returncode:
        raise RuntimeError(f"npm config exited with code {proc.returncode}")
    return json.loads(stdout.decode("utf-8") or "{}")


async def npm_proxy() -> Optional[str]:
    """Return npm's `https-proxy` (or `proxy`) setting, if any."""
    global _npm_proxy_known, _npm_proxy
    if not _npm_proxy_known:
        try:
            config = await _npm_config()
            _npm_proxy = config.get("https-proxy") or config.get("proxy") or None
        except (OSError, RuntimeError, ValueError) as exc:
            logger.debug("Could not read npm proxy settings: {}", exc)
            _npm_proxy = None
        _npm_proxy_known = True
    return _npm_proxy


async def request(
    method: str,
    url: str,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    **kwargs: Any,
) -> httpx.Response:
    """Send one request and return the response without raising on HTTP errors."""
    client_kwargs: dict[str, Any] = {
        "timeout": httpx.Timeout(HTTP_TIMEOUT_SECONDS, connect=10.0),
        "headers": {"User-Agent": HTTP_USER_AGENT},
        "follow_redirects": True,
    }
    if transport is not None:
        client_kwargs["transport"] = transport
    else:
        proxy = await npm_proxy()
        if proxy:
            client_kwargs["proxy"] = proxy

    logger.debug("{} {}", method, url)
    async with httpx.AsyncClient(**client_kwargs) as client:
        return await client.request(method, url, **kwargs)


async def get(url: str, **kwargs: Any) -> httpx.Response:
    return await request("GET", url, **kwargs)


async def post(url: str, **kwargs: Any) -> httpx.Response:
    return await request("POST", url, **kwargs)


def atomio_error_message(response: httpx.Response) -> str:
    """Best human-readable error text from an atom.io API response."""
    if response.status_code == 503:
        return "https://atom.io is temporarily unavailable, please try again later"

    try:
        body = response.json()
    except ValueError:
        body = response.text

    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        if message:
            return str(message)
    elif isinstance(body, str) and body:
        return body
    return str(response.status_code)
