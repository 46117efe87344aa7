"""
AlloCine Request Signer

Stamps the `sed` date parameter onto a ParameterSet and appends the `sig`
signature expected by the AlloCine API:

    sig = encode(base64(sha1(secret_key + canonical_query)))

The signature is computed over the query including `sed` but excluding
itself, and is appended after serialization.
"""
import base64
import hashlib
import logging
from datetime import date
from typing import Callable, Dict, Mapping

from allocine.signing.canonical import encode, serialize

logger = logging.getLogger(__name__)

DATE_PARAM = "sed"
SIGNATURE_PARAM = "sig"
DATE_FORMAT = "%Y%m%d"


def stamp_date(params: Mapping[str, str], day: date) -> Dict[str, str]:
    """Returns a copy of `params` with `sed=YYYYMMDD` appended last."""
    stamped = dict(params)
    stamped.pop(DATE_PARAM, None)
    stamped[DATE_PARAM] = day.strftime(DATE_FORMAT)
    return stamped


class RequestSigner:
    """
    Builds signed query strings for one shared secret.

    Holds no mutable state, so a single instance can be shared by any number
    of concurrent callers.
    """

    def __init__(self, secret_key: str, clock: Callable[[], date] = date.today):
        """
        Initializes the RequestSigner.

        Args:
            secret_key (str): The secret shared with the AlloCine API.
            clock (callable): Returns the local date used for `sed`.
                Inject a fixed clock to get reproducible signatures.

        Raises:
            ValueError: If the secret key is not provided.
        """
        if not secret_key:
            raise ValueError("AlloCine secret key is required.")
        self._secret_key = secret_key
        self._clock = clock

    def compute_signature(self, canonical: str) -> str:
        """
        Hashes the secret followed directly by the canonical query string and
        returns the base64 digest, percent-encoded.
        """
        # No separator between secret and query
        payload = (self._secret_key + canonical).encode("ascii")
        digest = hashlib.sha1(payload).digest()
        return encode(base64.b64encode(digest).decode("ascii"))

    def sign(self, params: Mapping[str, str]) -> str:
        """
        Produces the complete query string for one outgoing request.

        Args:
            params (Mapping): The caller's ParameterSet, without `sed`/`sig`.
                It is not modified.

        Returns:
            str: ``<canonical query with sed>&sig=<encoded digest>``
        """
        stamped = stamp_date(params, self._clock())
        canonical = serialize(stamped)
        signature = self.compute_signature(canonical)
        logger.debug(f"Signed AlloCine query: {canonical}")
        return f"{canonical}&{SIGNATURE_PARAM}={signature}"
