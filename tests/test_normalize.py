import pytest

from scenariotrace.normalize import (
    normalize_api_key,
    normalize_api_key_text,
    normalize_light,
    normalize_path,
    strip_review_markers,
)


def test_normalize_light_collapses_whitespace():
    text = "Line one\n\nLine   two\t\tLine three"
    assert normalize_light(text) == "Line one Line two Line three"


def test_normalize_light_strips_edges():
    text = "   leading and trailing   "
    assert normalize_light(text) == "leading and trailing"


def test_normalize_path_rewrites_colon_params():
    assert normalize_path("v1//customers/:id/") == "/v1/customers/{id}"
    assert normalize_path("/") == "/"


def test_normalize_api_key():
    assert normalize_api_key("get", "/v1/customers/:id") == "GET /v1/customers/{id}"
    assert normalize_api_key_text("post   /v1/customers/") == "POST /v1/customers"


def test_normalize_api_key_text_rejects_malformed_keys():
    with pytest.raises(ValueError):
        normalize_api_key_text("/v1/customers")


def test_strip_review_markers():
    assert strip_review_markers("Create customer with valid data ✅") == "Create customer with valid data"
    assert strip_review_markers("Reject duplicate email \U0001F195") == "Reject duplicate email"
