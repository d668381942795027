"""Certificate records and the certificate view they are built from."""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from cryptography import x509
from cryptography.x509.oid import NameOID

from tlsprobe.errors import CertificateDecodeFailure

# Fixed English month names; strftime("%b") follows the process locale
MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
          "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def format_asn1_time(moment: datetime) -> str:
    """Render a UTC datetime the way OpenSSL prints an ASN1_TIME."""
    return (
        f"{MONTHS[moment.month - 1]} {moment.day:2d} "
        f"{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d} "
        f"{moment.year} GMT"
    )


class CertificateView(ABC):
    """The four lookups the extractor needs from a certificate."""

    @abstractmethod
    def common_names(self) -> list[str]:
        ...

    @abstractmethod
    def dns_alt_names(self) -> list[str]:
        ...

    @abstractmethod
    def not_before(self) -> str:
        ...

    @abstractmethod
    def not_after(self) -> str:
        ...


class X509CertificateView(CertificateView):
    """CertificateView backed by a parsed ``cryptography`` certificate."""

    def __init__(self, cert: x509.Certificate):
        self._cert = cert

    @classmethod
    def from_der(cls, der: bytes) -> "X509CertificateView":
        try:
            return cls(x509.load_der_x509_certificate(der))
        except (ValueError, TypeError) as e:
            raise CertificateDecodeFailure(
                "certificate bytes are not valid DER", cause=e
            ) from e

    def common_names(self) -> list[str]:
        return [
            str(attr.value)
            for attr in self._cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
        ]

    def dns_alt_names(self) -> list[str]:
        # IP, email, URI and directory-name entries are not reported
        try:
            ext = self._cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
        except x509.ExtensionNotFound:
            return []
        return list(ext.value.get_values_for_type(x509.DNSName))

    def not_before(self) -> str:
        return format_asn1_time(self._cert.not_valid_before_utc)

    def not_after(self) -> str:
        return format_asn1_time(self._cert.not_valid_after_utc)


@dataclass(frozen=True)
class CertificateRecord:
    subject_names: tuple
    subject_alt_names: tuple
    not_before: str
    not_after: str

    @classmethod
    def from_view(cls, view: CertificateView) -> "CertificateRecord":
        return cls(
            subject_names=tuple(view.common_names()),
            subject_alt_names=tuple(view.dns_alt_names()),
            not_before=view.not_before(),
            not_after=view.not_after(),
        )

    def to_dict(self) -> dict:
        """Field order is part of the output contract."""
        return {
            "subject_names": list(self.subject_names),
            "subject_alt_names": list(self.subject_alt_names),
            "not_before": self.not_before,
            "not_after": self.not_after,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())
