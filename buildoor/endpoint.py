"""Builder endpoint resolution.

Accepts either a full URL (``https://builder.example:18550``) or a bare
``host:port`` pair and normalizes it into a base URL that request paths are
appended to.
"""

import logging
from dataclasses import dataclass
from urllib.parse import quote, urlsplit

from .exceptions import InvalidEndpoint

logger = logging.getLogger(__name__)

DEFAULT_SCHEME = "http"

HOST_PORT_HINT = "hostname must include port, separated by one colon, like example.com:3500"


@dataclass(frozen=True)
class Endpoint:
    """Normalized builder base URL: scheme plus ``host[:port]`` netloc, no path."""

    scheme: str
    host: str

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}"

    def url(self, path: str) -> str:
        """Join an absolute request path onto the endpoint."""
        if not path.startswith("/"):
            path = "/" + path
        return self.base_url + path

    def __str__(self) -> str:
        return self.base_url


def split_host_port(hostport: str) -> tuple[str, str]:
    """Split ``host:port`` (or ``[ipv6]:port``) into its two parts.

    Raises:
        ValueError: If the string does not contain exactly one host/port separator
    """
    if hostport.startswith("["):
        end = hostport.find("]")
        if end < 0:
            raise ValueError(f"missing ']' in address {hostport!r}")
        host = hostport[1:end]
        rest = hostport[end + 1:]
        if not rest.startswith(":"):
            raise ValueError(f"missing port in address {hostport!r}")
        port = rest[1:]
    else:
        if hostport.count(":") != 1:
            raise ValueError(f"expected exactly one colon in address {hostport!r}")
        host, port = hostport.split(":")

    if not host:
        raise ValueError(f"missing host in address {hostport!r}")
    if not port.isdigit() or int(port) > 65535:
        raise ValueError(f"invalid port {port!r} in address {hostport!r}")
    return host, port


def join_host_port(host: str, port: str) -> str:
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def resolve_endpoint(host: str) -> Endpoint:
    """Resolve a user supplied builder host into an Endpoint.

    A string that parses as a URL with a host keeps its scheme. Anything else
    has to be a plain ``host:port`` pair and is given the ``http`` scheme.

    Raises:
        InvalidEndpoint: If the input is neither a URL nor ``host:port``
    """
    host = host.strip()

    try:
        parts = urlsplit(host)
    except ValueError:
        parts = None

    if parts is not None and parts.scheme and parts.hostname:
        endpoint = Endpoint(scheme=parts.scheme.lower(), host=parts.netloc)
        logger.debug(f"Resolved builder endpoint {host!r} as URL: {endpoint}")
        return endpoint

    try:
        h, port = split_host_port(host)
    except ValueError as e:
        raise InvalidEndpoint(host, HOST_PORT_HINT) from e

    endpoint = Endpoint(scheme=DEFAULT_SCHEME, host=join_host_port(h, port))
    logger.debug(f"Resolved builder endpoint {host!r} as host:port: {endpoint}")
    return endpoint


def escape_segment(segment: str) -> str:
    """Percent-escape a single path segment."""
    return quote(segment, safe="")
