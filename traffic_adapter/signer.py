import base64
import hashlib
import hmac
from typing import Dict, Mapping
from urllib.parse import quote


def percent_encode(value: str) -> str:
    """RFC 3986 percent-encoding as the edge analytics API expects it."""
    encoded = quote(str(value), safe='~')
    return encoded.replace('+', '%20').replace('*', '%2A').replace('%7E', '~')


def canonicalize(params: Mapping[str, str]) -> str:
    """Sorted, percent-encoded ``key=value`` pairs joined by ``&``."""
    return '&'.join(
        f"{percent_encode(key)}={percent_encode(params[key])}"
        for key in sorted(params)
    )


def string_to_sign(params: Mapping[str, str], method: str = 'GET') -> str:
    return f"{method}&{percent_encode('/')}&{percent_encode(canonicalize(params))}"


def compute_signature(secret_key: str, message: str) -> str:
    """Base64 HMAC-SHA1 keyed with the secret plus ``&``."""
    digest = hmac.new(
        (secret_key + '&').encode('utf-8'),
        message.encode('utf-8'),
        hashlib.sha1,
    ).digest()
    return base64.b64encode(digest).decode('ascii')


def sign_params(params: Mapping[str, str], secret_key: str, method: str = 'GET') -> Dict[str, str]:
    """Return a copy of ``params`` with the ``Signature`` parameter added."""
    signed = dict(params)
    signed['Signature'] = compute_signature(secret_key, string_to_sign(params, method))
    return signed
