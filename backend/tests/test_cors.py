"""Tests for the origin access policy."""

from sse_channel.cors import CorsPolicy


class TestFromOption:
    def test_disabled_values(self):
        for value in (None, False, 0, "", {}, {"origins": None}):
            assert not CorsPolicy.from_option(value).enabled

    def test_origins_mapping(self):
        policy = CorsPolicy.from_option({"origins": ["https://a.example"]})
        assert policy.enabled
        assert policy.origins == frozenset({"https://a.example"})

    def test_wildcard(self):
        assert CorsPolicy.from_option({"origins": ["*"]}).allows_all

    def test_policy_passthrough(self):
        policy = CorsPolicy.allow_all()
        assert CorsPolicy.from_option(policy) is policy


class TestDecision:
    def test_disabled_allows_everything(self):
        assert CorsPolicy.disabled().allows("https://evil.example")
        assert CorsPolicy.disabled().response_headers("https://evil.example") == {}

    def test_allow_list(self):
        policy = CorsPolicy.allow_list(["https://a.example"])
        assert policy.allows("https://a.example")
        assert not policy.allows("https://b.example")

    def test_same_origin_requests_pass(self):
        assert CorsPolicy.allow_list(["https://a.example"]).allows(None)

    def test_response_headers_echo_origin(self):
        headers = CorsPolicy.allow_all().response_headers("https://b.example")
        assert headers == {
            "Access-Control-Allow-Origin": "https://b.example",
            "Access-Control-Allow-Headers": "Last-Event-ID",
        }

    def test_preflight_headers(self):
        headers = CorsPolicy.allow_all().preflight_headers("https://b.example")
        assert headers["Access-Control-Allow-Methods"] == "GET, HEAD, OPTIONS"
        assert headers["Access-Control-Allow-Headers"] == "Last-Event-ID"

    def test_no_headers_for_denied_origin(self):
        policy = CorsPolicy.allow_list(["https://a.example"])
        assert policy.preflight_headers("https://b.example") == {}
