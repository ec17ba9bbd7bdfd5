import base64
import hashlib
import hmac
import secrets
import time
from dataclasses import dataclass
from urllib.parse import parse_qsl, quote, urlsplit

from errors import ConfigurationError, EncodingError


SIGNATURE_METHOD = "HMAC-SHA256"
OAUTH_VERSION = "1.0"

DEFAULT_PORTS = {"http": 80, "https": 443}

REQUIRED_FIELDS = ("consumer_key", "consumer_secret", "token_id", "token_secret")


@dataclass(frozen=True)
class Credentials:
    consumer_key: str
    consumer_secret: str
    token_id: str
    token_secret: str
    realm: str | None = None

    def missing_fields(self):
        return [name for name in REQUIRED_FIELDS if not getattr(self, name)]


def generate_nonce() -> str:
    return secrets.token_hex(16)


def generate_timestamp() -> str:
    return str(int(time.time()))


def percent_encode(value) -> str:
    # quote() leaves only alphanumerics and "_.-~" unescaped, so !'()* are encoded too
    try:
        return quote(str(value), safe="~")
    except UnicodeEncodeError as err:
        raise EncodingError(f"Cannot percent-encode value: {err}") from err


def normalize_url(url: str) -> str:
    """
    Base URL for the signature: scheme://host[:port]/path.

    Scheme and host are lowercased, default ports dropped, query string and
    fragment excluded.
    """
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError as err:
        raise EncodingError(f"Malformed URL {url!r}: {err}") from err

    scheme = parts.scheme.lower()
    if scheme not in DEFAULT_PORTS:
        raise EncodingError(f"Unsupported URL scheme in {url!r}")
    if not parts.hostname:
        raise EncodingError(f"URL has no host: {url!r}")

    host = parts.hostname.lower()
    if ":" in host:
        host = f"[{host}]"
    if port is not None and port != DEFAULT_PORTS[scheme]:
        host = f"{host}:{port}"

    return f"{scheme}://{host}{parts.path or '/'}"


def query_parameters(url: str):
    try:
        query = urlsplit(url).query
        return parse_qsl(query, keep_blank_values=True, errors="strict")
    except ValueError as err:
        raise EncodingError(f"Malformed query string in {url!r}: {err}") from err


def parameter_string(params, query=()) -> str:
    pairs = [(percent_encode(key), percent_encode(value)) for key, value in params.items()]
    pairs.extend((percent_encode(key), percent_encode(value)) for key, value in query)
    return "&".join(f"{key}={value}" for key, value in sorted(pairs))


def signature_base_string(method: str, url: str, param_string: str) -> str:
    return "&".join([
        method.upper(),
        percent_encode(normalize_url(url)),
        percent_encode(param_string),
    ])


def signing_key(consumer_secret: str, token_secret: str | None) -> str:
    return f"{percent_encode(consumer_secret)}&{percent_encode(token_secret or '')}"


def hmac_sha256_signature(base_string: str, key: str) -> str:
    digest = hmac.new(key.encode("utf-8"), base_string.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def authorization_header(oauth_params, realm: str | None = None) -> str:
    pairs = []
    if realm:
        pairs.append(("realm", realm))
    pairs.extend(sorted(oauth_params.items()))

    header = ", ".join(f'{key}="{percent_encode(value)}"' for key, value in pairs)
    return f"OAuth {header}"


class RequestSigner:
    """
    Builds OAuth 1.0a HMAC-SHA256 Authorization headers for one set of credentials.

    Every call to sign() draws its own nonce and timestamp, so a header is
    valid for exactly one request attempt. The signer keeps no state between
    calls and may be shared across threads.
    """

    def __init__(self, credentials: Credentials, nonce_factory=generate_nonce, clock=generate_timestamp, log=None):
        missing = credentials.missing_fields()
        if missing:
            raise ConfigurationError(f"Missing required OAuth credentials: {', '.join(missing)}")

        self.credentials = credentials
        self._nonce_factory = nonce_factory
        self._clock = clock
        self._log = log

    def sign(self, method: str, url: str) -> str:
        return self.sign_with(method, url, nonce=self._nonce_factory(), timestamp=self._clock())

    def sign_with(self, method: str, url: str, nonce: str, timestamp: str) -> str:
        creds = self.credentials
        oauth_params = {
            "oauth_consumer_key": creds.consumer_key,
            "oauth_nonce": nonce,
            "oauth_signature_method": SIGNATURE_METHOD,
            "oauth_timestamp": str(timestamp),
            "oauth_token": creds.token_id,
            "oauth_version": OAUTH_VERSION,
        }

        param_string = parameter_string(oauth_params, query_parameters(url))
        base_string = signature_base_string(method, url, param_string)
        key = signing_key(creds.consumer_secret, creds.token_secret)
        oauth_params["oauth_signature"] = hmac_sha256_signature(base_string, key)

        if self._log is not None:
            self._log(
                "oauth.signed",
                method=method.upper(),
                base_url=normalize_url(url),
                consumer_key=creds.consumer_key,
                token_id=creds.token_id,
                nonce=nonce,
                timestamp=oauth_params["oauth_timestamp"],
            )

        return authorization_header(oauth_params, realm=creds.realm)


def sign(credentials: Credentials, method: str, url: str, **signer_kwargs) -> str:
    return RequestSigner(credentials, **signer_kwargs).sign(method, url)
