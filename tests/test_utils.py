"""Tests for URL validation, normalization and origin checks."""

import pytest

from keyword_crawler.exceptions import ValidationError
from keyword_crawler.utils import (
    URLNormalizer,
    clean_text,
    origin_of,
    same_origin,
    validate_and_normalize_url,
)


class TestValidateAndNormalizeUrl:

    def test_scheme_defaults_to_https(self):
        assert validate_and_normalize_url("example.com") == "https://example.com/"

    def test_host_lowercased_and_trimmed(self):
        assert validate_and_normalize_url("  HTTP://Example.COM/About ") == "http://example.com/About"

    @pytest.mark.parametrize("url", [
        "",
        "   ",
        "ftp://example.com",
        "https://",
        "http://exa mple.com",
        "https://example.com:99999",
    ])
    def test_invalid(self, url):
        with pytest.raises(ValidationError):
            validate_and_normalize_url(url)

    def test_error_message_names_url(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_and_normalize_url("ftp://example.com")
        assert "Invalid URL format" in str(exc_info.value)


class TestURLNormalizer:

    def setup_method(self):
        self.normalizer = URLNormalizer()

    def test_relative_link_resolved(self):
        assert self.normalizer.normalize("/about", "https://example.com/home") == "https://example.com/about"

    def test_fragment_removed(self):
        assert self.normalizer.normalize("https://example.com/docs#intro") == "https://example.com/docs"

    @pytest.mark.parametrize("href", [
        "javascript:void(0)",
        "mailto:hello@example.com",
        "tel:+15551234",
        "#top",
        "",
    ])
    def test_non_navigational_links_skipped(self, href):
        assert self.normalizer.normalize(href, "https://example.com/") is None

    def test_resource_links_skipped(self):
        assert self.normalizer.normalize("/files/brochure.pdf", "https://example.com/") is None
        assert self.normalizer.normalize("/img/logo.PNG", "https://example.com/") is None

    def test_query_kept(self):
        assert self.normalizer.normalize("/search?q=seo", "https://example.com/") == "https://example.com/search?q=seo"


class TestOrigin:

    def test_origin_of(self):
        assert origin_of("https://Example.com:8443/a/b?c=d") == "https://example.com:8443"

    def test_same_origin_ignores_path(self):
        assert same_origin("https://example.com/blog/post", "https://example.com")

    def test_scheme_must_match(self):
        assert not same_origin("http://example.com/", "https://example.com")

    def test_subdomain_is_different_origin(self):
        assert not same_origin("https://blog.example.com/", "https://example.com")

    def test_port_must_match(self):
        assert not same_origin("https://example.com:8443/", "https://example.com")


def test_clean_text_collapses_whitespace():
    assert clean_text("  Hello \n\n  world\t! ") == "Hello world !"
    assert clean_text(None) == ""
