"""Walk a peer trust chain and turn every entry into a CertificateRecord."""

import logging
from abc import ABC, abstractmethod
from typing import Callable

from tlsprobe.certificate import CertificateRecord, CertificateView, X509CertificateView
from tlsprobe.errors import CertificateDecodeFailure, CertificateNotFound

logger = logging.getLogger(__name__)


class TrustChain(ABC):
    """Indexed access to the certificates a peer presented, in peer order."""

    @abstractmethod
    def count(self) -> int:
        ...

    @abstractmethod
    def certificate_at(self, index: int) -> bytes:
        """Return the DER bytes at ``index``; raise CertificateNotFound if out of range."""


class DerTrustChain(TrustChain):
    def __init__(self, certificates):
        self._certificates = [bytes(der) for der in certificates]

    @classmethod
    def from_ssl_object(cls, ssl_object) -> "DerTrustChain":
        """Collect the chain from a live ssl.SSLObject / ssl.SSLSocket.

        ``get_unverified_chain`` exists from Python 3.13; older interpreters
        only expose the leaf certificate.
        """
        get_chain = getattr(ssl_object, "get_unverified_chain", None)
        if get_chain is not None:
            chain = get_chain() or []
            return cls(chain)
        leaf = ssl_object.getpeercert(binary_form=True)
        return cls([leaf] if leaf else [])

    def count(self) -> int:
        return len(self._certificates)

    def certificate_at(self, index: int) -> bytes:
        if index < 0 or index >= len(self._certificates):
            raise CertificateNotFound(f"no certificate at index {index}")
        return self._certificates[index]


def extract_certificates(
    chain: TrustChain,
    decode: Callable[[bytes], CertificateView] = X509CertificateView.from_der,
) -> list[CertificateRecord]:
    """Return one record per chain entry, index 0 first."""
    records = []
    total = chain.count()
    for index in range(total):
        der = chain.certificate_at(index)
        try:
            view = decode(der)
            record = CertificateRecord.from_view(view)
        except CertificateDecodeFailure as e:
            e.index = index
            raise
        except ValueError as e:
            # cryptography parses extensions lazily
            raise CertificateDecodeFailure(
                f"certificate {index} could not be decoded", index=index, cause=e
            ) from e
        logger.debug("Certificate %d/%d: %s", index + 1, total, record.subject_names)
        records.append(record)
    return records
