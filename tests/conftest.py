"""Shared pytest fixtures: certificates built with ``cryptography``."""

import datetime

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

UTC = datetime.timezone.utc


def build_certificate(
    common_names=("example.com",),
    alt_names=None,
    not_before=datetime.datetime(2024, 1, 1, tzinfo=UTC),
    not_after=datetime.datetime(2025, 1, 1, tzinfo=UTC),
):
    """Return a self-signed (certificate, private_key) pair."""
    key = ec.generate_private_key(ec.SECP256R1())
    subject = x509.Name(
        [x509.NameAttribute(NameOID.COMMON_NAME, name) for name in common_names]
        or [x509.NameAttribute(NameOID.ORGANIZATION_NAME, "No CN Ltd")]
    )
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_after)
    )
    if alt_names is not None:
        builder = builder.add_extension(x509.SubjectAlternativeName(alt_names), critical=False)
    return builder.sign(key, hashes.SHA256()), key


@pytest.fixture
def der_certificate():
    """Factory returning the DER encoding of a freshly built certificate."""
    def _build(**kwargs) -> bytes:
        cert, _ = build_certificate(**kwargs)
        return cert.public_bytes(serialization.Encoding.DER)
    return _build


@pytest.fixture(scope="session")
def server_identity(tmp_path_factory):
    """PEM cert/key files for an in-process TLS server on 127.0.0.1."""
    import ipaddress

    now = datetime.datetime.now(UTC)
    cert, key = build_certificate(
        common_names=("localhost",),
        alt_names=[
            x509.DNSName("localhost"),
            x509.IPAddress(ipaddress.ip_address("127.0.0.1")),
        ],
        not_before=now - datetime.timedelta(days=1),
        not_after=now + datetime.timedelta(days=30),
    )
    cert_dir = tmp_path_factory.mktemp("certs")
    cert_file = cert_dir / "server.crt"
    key_file = cert_dir / "server.key"
    cert_file.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    key_file.write_bytes(
        key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
    )
    return str(cert_file), str(key_file), cert
