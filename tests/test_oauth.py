import re
import unittest
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock, patch
from urllib.parse import unquote

from errors import ConfigurationError, EncodingError
from oauth import (
    Credentials,
    RequestSigner,
    authorization_header,
    generate_nonce,
    generate_timestamp,
    normalize_url,
    parameter_string,
    percent_encode,
    query_parameters,
    sign,
    signature_base_string,
    signing_key,
)


CREDS = Credentials(
    consumer_key="CK",
    consumer_secret="CS",
    token_id="TK",
    token_secret="TS",
    realm="ACCT1",
)
URL = "https://example.com/app.nl?script=1&deploy=1"
NONCE = "n0nce1234567890a"
TIMESTAMP = "1700000000"

# reference values computed independently with openssl / node crypto
EXPECTED_SIGNATURE = "KBOSkDolTu29WDCLogi+bsHcHw+uESB+vkdFVCNe2Fo="
EXPECTED_SIGNATURE_DEPLOY_2 = "mm9EnJCA0zA0ZSIYZp8kvqfJM4SXMtXGzL0CfCsWEao="
EXPECTED_BASE_STRING = (
    "POST&https%3A%2F%2Fexample.com%2Fapp.nl&deploy%3D1%26oauth_consumer_key%3DCK"
    "%26oauth_nonce%3Dn0nce1234567890a%26oauth_signature_method%3DHMAC-SHA256"
    "%26oauth_timestamp%3D1700000000%26oauth_token%3DTK%26oauth_version%3D1.0%26script%3D1"
)
EXPECTED_HEADER = (
    'OAuth realm="ACCT1", oauth_consumer_key="CK", oauth_nonce="n0nce1234567890a", '
    'oauth_signature="KBOSkDolTu29WDCLogi%2BbsHcHw%2BuESB%2BvkdFVCNe2Fo%3D", '
    'oauth_signature_method="HMAC-SHA256", oauth_timestamp="1700000000", '
    'oauth_token="TK", oauth_version="1.0"'
)


def parse_header(header):
    assert header.startswith("OAuth ")
    params = {}
    for pair in header[len("OAuth "):].split(", "):
        match = re.fullmatch(r'(\w+)="([^"]*)"', pair)
        assert match, pair
        params[match.group(1)] = unquote(match.group(2))
    return params


def signature_of(credentials=CREDS, method="POST", url=URL, nonce=NONCE, timestamp=TIMESTAMP):
    header = RequestSigner(credentials).sign_with(method, url, nonce=nonce, timestamp=timestamp)
    return parse_header(header)["oauth_signature"]


class PercentEncodeTests(unittest.TestCase):
    def test_unreserved_characters_pass_through(self):
        unreserved = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-._~"
        self.assertEqual(percent_encode(unreserved), unreserved)

    def test_reserved_and_sub_delims_are_escaped_uppercase(self):
        self.assertEqual(percent_encode("!'()*"), "%21%27%28%29%2A")
        self.assertEqual(percent_encode(" &=/:?"), "%20%26%3D%2F%3A%3F")
        self.assertEqual(percent_encode("+,;@#%"), "%2B%2C%3B%40%23%25")

    def test_non_ascii_is_utf8_encoded(self):
        self.assertEqual(percent_encode("é"), "%C3%A9")
        self.assertEqual(percent_encode("日"), "%E6%97%A5")

    def test_unencodable_value_raises_encoding_error(self):
        with self.assertRaises(EncodingError):
            percent_encode("\ud800")


class NormalizeUrlTests(unittest.TestCase):
    def test_drops_query_fragment_and_default_port(self):
        self.assertEqual(
            normalize_url("HTTPS://Example.COM:443/app.nl?script=1#frag"),
            "https://example.com/app.nl",
        )

    def test_keeps_non_default_port_and_defaults_path(self):
        self.assertEqual(normalize_url("http://example.com:8080"), "http://example.com:8080/")

    def test_http_default_port_is_dropped(self):
        self.assertEqual(normalize_url("http://example.com:80/a/b"), "http://example.com/a/b")

    def test_malformed_urls_raise_encoding_error(self):
        for url in ("not a url", "ftp://example.com/file", "https://example.com:99999/", "https:///path"):
            with self.subTest(url=url):
                with self.assertRaises(EncodingError):
                    normalize_url(url)


class QueryParameterTests(unittest.TestCase):
    def test_pairs_are_decoded_and_blanks_kept(self):
        self.assertEqual(
            query_parameters("https://example.com/?a=1&b=&c=hello+world&d=%21"),
            [("a", "1"), ("b", ""), ("c", "hello world"), ("d", "!")],
        )

    def test_invalid_utf8_escape_raises_encoding_error(self):
        with self.assertRaises(EncodingError):
            query_parameters("https://example.com/?a=%FF")


class ParameterStringTests(unittest.TestCase):
    def test_sorted_by_encoded_key(self):
        self.assertEqual(parameter_string({"b": "2", "a": "1", "c d": "x y"}), "a=1&b=2&c%20d=x%20y")

    def test_ties_are_broken_by_encoded_value(self):
        self.assertEqual(parameter_string({}, [("a", "2"), ("a", "10"), ("a", "1")]), "a=1&a=10&a=2")

    def test_input_order_does_not_matter(self):
        params = {"oauth_token": "TK", "oauth_nonce": "n", "oauth_consumer_key": "CK", "z": "!"}
        reordered = dict(reversed(list(params.items())))
        query = [("script", "1"), ("deploy", "1")]

        self.assertEqual(
            parameter_string(params, query),
            parameter_string(reordered, list(reversed(query))),
        )


class SigningPrimitiveTests(unittest.TestCase):
    def test_signature_base_string_matches_reference(self):
        params = {
            "oauth_consumer_key": "CK",
            "oauth_nonce": NONCE,
            "oauth_signature_method": "HMAC-SHA256",
            "oauth_timestamp": TIMESTAMP,
            "oauth_token": "TK",
            "oauth_version": "1.0",
        }
        base = signature_base_string("post", URL, parameter_string(params, query_parameters(URL)))
        self.assertEqual(base, EXPECTED_BASE_STRING)

    def test_signing_key_keeps_separator_without_token_secret(self):
        self.assertEqual(signing_key("c s", None), "c%20s&")
        self.assertEqual(signing_key("CS", "T&S"), "CS&T%26S")

    def test_header_without_realm(self):
        header = authorization_header({"oauth_b": "2", "oauth_a": "x y"})
        self.assertEqual(header, 'OAuth oauth_a="x%20y", oauth_b="2"')

    def test_nonce_and_timestamp_providers(self):
        nonce = generate_nonce()
        self.assertEqual(len(nonce), 32)
        int(nonce, 16)
        self.assertTrue(generate_timestamp().isdigit())

    def test_nonces_do_not_collide(self):
        nonces = {generate_nonce() for _ in range(10000)}
        self.assertEqual(len(nonces), 10000)


class RequestSignerTests(unittest.TestCase):
    def test_reference_vector(self):
        header = RequestSigner(CREDS).sign_with("POST", URL, nonce=NONCE, timestamp=TIMESTAMP)
        self.assertEqual(header, EXPECTED_HEADER)
        self.assertEqual(parse_header(header)["oauth_signature"], EXPECTED_SIGNATURE)

    def test_reference_vector_changes_with_query(self):
        url = "https://example.com/app.nl?script=1&deploy=2"
        self.assertEqual(signature_of(url=url), EXPECTED_SIGNATURE_DEPLOY_2)

    def test_deterministic_for_fixed_inputs(self):
        signer = RequestSigner(CREDS, nonce_factory=lambda: NONCE, clock=lambda: TIMESTAMP)
        self.assertEqual(signer.sign("POST", URL), EXPECTED_HEADER)
        self.assertEqual(signer.sign("POST", URL), EXPECTED_HEADER)

    def test_functional_entry_point(self):
        header = sign(CREDS, "POST", URL, nonce_factory=lambda: NONCE, clock=lambda: TIMESTAMP)
        self.assertEqual(header, EXPECTED_HEADER)

    def test_every_input_changes_signature(self):
        variants = {
            "method": dict(method="GET"),
            "url": dict(url="https://example.com/app.nl?script=1&deploy=3"),
            "path": dict(url="https://example.com/app2.nl?script=1&deploy=1"),
            "nonce": dict(nonce="n0nce1234567890b"),
            "timestamp": dict(timestamp="1700000001"),
            "consumer_key": dict(credentials=Credentials("CK2", "CS", "TK", "TS", "ACCT1")),
            "consumer_secret": dict(credentials=Credentials("CK", "CS2", "TK", "TS", "ACCT1")),
            "token_id": dict(credentials=Credentials("CK", "CS", "TK2", "TS", "ACCT1")),
            "token_secret": dict(credentials=Credentials("CK", "CS", "TK", "TS2", "ACCT1")),
        }
        for name, kwargs in variants.items():
            with self.subTest(changed=name):
                self.assertNotEqual(signature_of(**kwargs), EXPECTED_SIGNATURE)

    def test_header_round_trip(self):
        header = RequestSigner(CREDS).sign_with("POST", URL, nonce="a b!*", timestamp=TIMESTAMP)
        params = parse_header(header)

        self.assertEqual(
            set(params),
            {
                "realm",
                "oauth_consumer_key",
                "oauth_nonce",
                "oauth_signature",
                "oauth_signature_method",
                "oauth_timestamp",
                "oauth_token",
                "oauth_version",
            },
        )
        self.assertEqual(params["realm"], "ACCT1")
        self.assertEqual(params["oauth_nonce"], "a b!*")
        self.assertEqual(params["oauth_signature_method"], "HMAC-SHA256")
        self.assertEqual(params["oauth_version"], "1.0")

    def test_realm_omitted_when_not_configured(self):
        creds = Credentials("CK", "CS", "TK", "TS")
        params = parse_header(RequestSigner(creds).sign_with("POST", URL, nonce=NONCE, timestamp=TIMESTAMP))

        self.assertNotIn("realm", params)
        self.assertEqual(params["oauth_signature"], EXPECTED_SIGNATURE)

    def test_each_call_uses_fresh_nonce(self):
        signer = RequestSigner(CREDS)
        first = parse_header(signer.sign("POST", URL))
        second = parse_header(signer.sign("POST", URL))

        self.assertNotEqual(first["oauth_nonce"], second["oauth_nonce"])
        self.assertNotEqual(first["oauth_signature"], second["oauth_signature"])

    def test_concurrent_signing_is_independent(self):
        signer = RequestSigner(CREDS)
        with ThreadPoolExecutor(max_workers=8) as pool:
            headers = list(pool.map(lambda _: signer.sign("POST", URL), range(200)))

        nonces = {parse_header(h)["oauth_nonce"] for h in headers}
        self.assertEqual(len(nonces), 200)

    def test_credentials_not_mutated(self):
        before = Credentials(**CREDS.__dict__)
        RequestSigner(CREDS).sign("POST", URL)
        self.assertEqual(CREDS, before)

    @patch("oauth.hmac.new")
    def test_empty_token_secret_rejected_before_hmac(self, hmac_new):
        creds = Credentials("CK", "CS", "TK", "")
        with self.assertRaises(ConfigurationError) as ctx:
            sign(creds, "POST", URL)

        self.assertIn("token_secret", str(ctx.exception))
        hmac_new.assert_not_called()

    def test_missing_fields_listed_together(self):
        with self.assertRaises(ConfigurationError) as ctx:
            RequestSigner(Credentials("", "CS", None, "TS"))

        self.assertIn("consumer_key", str(ctx.exception))
        self.assertIn("token_id", str(ctx.exception))

    def test_malformed_url_raises_encoding_error(self):
        with self.assertRaises(EncodingError):
            RequestSigner(CREDS).sign("POST", "example.com/no-scheme")

    def test_log_event_receives_no_secrets(self):
        log = MagicMock()
        RequestSigner(CREDS, log=log).sign_with("post", URL, nonce=NONCE, timestamp=TIMESTAMP)

        log.assert_called_once()
        event, = log.call_args.args
        fields = log.call_args.kwargs
        self.assertEqual(event, "oauth.signed")
        self.assertEqual(fields["method"], "POST")
        self.assertEqual(fields["base_url"], "https://example.com/app.nl")
        self.assertNotIn("CS", fields.values())
        self.assertNotIn("TS", fields.values())
        self.assertNotIn(EXPECTED_SIGNATURE, fields.values())


if __name__ == "__main__":
    unittest.main()
