"""SSLContext factory for the probe client."""

import ssl

# Protocol names reported by SSLObject.version()
VERSION_NAMES = {
    ssl.TLSVersion.TLSv1: "TLSv1",
    ssl.TLSVersion.TLSv1_1: "TLSv1.1",
    ssl.TLSVersion.TLSv1_2: "TLSv1.2",
}


def create_probe_context(versions) -> ssl.SSLContext:
    """Create an unverified client context limited to the span of ``versions``.

    OpenSSL only supports a contiguous min/max range, so callers must still
    check the negotiated version with ``is_requested_version``.
    """
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    ctx.minimum_version = min(versions)
    ctx.maximum_version = max(versions)
    if ctx.minimum_version < ssl.TLSVersion.TLSv1_2:
        # TLS 1.0/1.1 need the legacy cipher set on OpenSSL 3
        ctx.set_ciphers("DEFAULT:@SECLEVEL=0")
    # Servers that drop the socket without close_notify still end the read
    ctx.options |= getattr(ssl, "OP_IGNORE_UNEXPECTED_EOF", 0)
    return ctx


def is_requested_version(negotiated: str | None, versions) -> bool:
    return negotiated in {VERSION_NAMES[v] for v in versions}
