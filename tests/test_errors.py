"""Unit tests for addresses, the error taxonomy and the response envelope."""

import pytest

from napft.addresses import normalize_address, normalize_optional, same_address
from napft.errors import InternalError, InvalidState, MarketplaceError, NotFound, Unauthorized, ValidationError
from napft.query.envelope import ApiResponse, Pagination, error_body


class TestAddresses:
    def test_normalize_lowercases_and_strips(self):
        assert normalize_address("  0xAbC ") == "0xabc"

    @pytest.mark.parametrize("value", ["", "   ", None, 42])
    def test_normalize_rejects_empty(self, value):
        with pytest.raises(ValidationError):
            normalize_address(value)

    def test_normalize_optional(self):
        assert normalize_optional(None) is None
        assert normalize_optional("0xA") == "0xa"

    def test_same_address(self):
        assert same_address("0xABC", "0xabc")
        assert same_address(" 0xabc", "0xABC ")
        assert not same_address("0xabc", "0xabd")
        assert not same_address(None, "0xabc")
        assert not same_address(None, None)


class TestErrors:
    @pytest.mark.parametrize(
        ("cls", "status", "code"),
        [
            (ValidationError, 400, "ValidationError"),
            (NotFound, 404, "NotFound"),
            (Unauthorized, 403, "Unauthorized"),
            (InvalidState, 400, "InvalidState"),
            (InternalError, 500, "InternalError"),
        ],
    )
    def test_status_mapping(self, cls, status, code):
        err = cls("boom", details={"field": "price"})
        assert isinstance(err, MarketplaceError)
        assert err.status_code == status
        assert err.error_code == code
        assert err.message == "boom"
        assert err.details == {"field": "price"}
        assert str(err) == "boom"


class TestEnvelope:
    def test_success_envelope_is_camel_case(self):
        response = ApiResponse[dict](
            data={"a": 1},
            pagination=Pagination(total=3, page=1, limit=2, total_pages=2),
        )
        dumped = response.model_dump(by_alias=True, exclude_none=True)
        assert dumped == {
            "success": True,
            "data": {"a": 1},
            "pagination": {"total": 3, "page": 1, "limit": 2, "totalPages": 2},
        }

    def test_error_body(self):
        assert error_body("nope", "NotFound") == {"success": False, "message": "nope", "error": "NotFound"}
        assert error_body("bad", "ValidationError", [{"loc": ["price"]}])["errors"] == [{"loc": ["price"]}]
