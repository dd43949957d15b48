"""
Client IP extraction behind proxies and load balancers.
"""
from typing import Optional

from fastapi import Request

# Checked in order; the first non-empty value wins
_FORWARDING_HEADERS = ("X-Real-IP", "CF-Connecting-IP", "True-Client-IP")


def get_client_ip(request: Request) -> Optional[str]:
    """
    Return the originating client IP.

    X-Forwarded-For is "client, proxy1, proxy2"; its first entry is the
    client. These headers are only trustworthy when the proxy in front of
    the app strips client-supplied copies.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        client_ip = forwarded_for.split(",")[0].strip()
        if client_ip:
            return client_ip

    for header in _FORWARDING_HEADERS:
        value = request.headers.get(header)
        if value and value.strip():
            return value.strip()

    if request.client:
        return request.client.host
    return None
