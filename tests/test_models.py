import pytest

from msoclient.errors import ApiError
from msoclient.models import check_for_errors, strip_quotes


def test_strip_quotes():
    assert strip_quotes('"3.7.1"') == "3.7.1"
    assert strip_quotes("3.7.1") == "3.7.1"
    assert strip_quotes('"') == '"'
    assert strip_quotes(None) == ""


def test_check_for_errors_accepts_regular_payloads():
    check_for_errors({"id": "1", "displayName": "schema"}, "GET")
    check_for_errors([{"id": "1"}], "GET")
    check_for_errors(None, "DELETE")


def test_check_for_errors_raises_on_error_document():
    with pytest.raises(ApiError) as excinfo:
        check_for_errors({"code": 400, "message": "Bad Request: duplicate name"}, "POST")

    assert excinfo.value.code == 400
    assert "duplicate name" in str(excinfo.value)


def test_check_for_errors_raises_on_error_list():
    with pytest.raises(ApiError, match="first; second"):
        check_for_errors({"errors": [{"message": "first"}, "second"]}, "PATCH")
