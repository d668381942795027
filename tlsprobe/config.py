"""Configuration module — frozen dataclass built from parsed CLI arguments."""
import ssl
from dataclasses import dataclass

from tlsprobe.errors import InvalidConfiguration

HTTPS_PORT = 443

TLS_VERSION_TOKENS = {
    "1": ssl.TLSVersion.TLSv1,
    "1.0": ssl.TLSVersion.TLSv1,
    "1.1": ssl.TLSVersion.TLSv1_1,
    "1.2": ssl.TLSVersion.TLSv1_2,
}

def ascii_hostname(host: str) -> str:
    """IDNA-encode ``host`` for DNS, SNI and the Host header.

    Raises UnicodeError for empty or over-long labels.
    """
    return host.encode("idna").decode("ascii")

def parse_tls_versions(tokens) -> tuple:
    """Map version tokens to ssl.TLSVersion members, sorted and de-duplicated."""
    if not tokens:
        raise InvalidConfiguration("at least one TLS version is required", stage="configuration")
    versions = set()
    for token in tokens:
        version = TLS_VERSION_TOKENS.get(token.strip())
        if version is None:
            raise InvalidConfiguration(
                f"unknown TLS version {token!r} (expected one of: 1, 1.0, 1.1, 1.2)",
                stage="configuration",
            )
        versions.add(version)
    return tuple(sorted(versions))

@dataclass(frozen=True)
class ProbeConfig:
    host: str
    tls_versions: tuple = (ssl.TLSVersion.TLSv1_2,)
    with_body: bool = False
    port: int = HTTPS_PORT
    stage_timeout: float | None = None
    output: str = "text"
    color: bool = False

    @classmethod
    def from_args(cls, args) -> "ProbeConfig":
        host = args.host.strip()
        if not host or "/" in host:
            raise InvalidConfiguration(
                f"expected a bare hostname, got {args.host!r}", stage="configuration"
            )
        try:
            host = ascii_hostname(host)
        except UnicodeError as e:
            raise InvalidConfiguration(
                f"invalid hostname {args.host!r}", stage="configuration", cause=e
            ) from e
        if args.timeout is not None and args.timeout <= 0:
            raise InvalidConfiguration("--timeout must be positive", stage="configuration")
        return cls(
            host=host,
            tls_versions=parse_tls_versions(args.tls_versions),
            with_body=args.with_body,
            stage_timeout=args.timeout,
            output=args.output,
            color=args.color,
        )
