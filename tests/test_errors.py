import importlib.util
import warnings
from pathlib import Path

from freelancehub.utils import errors
from freelancehub.utils.errors import ValidationFailed, error_response


def test_error_response_omits_empty_details():
    assert error_response("NOT_FOUND", "Missing") == {"error": {"code": "NOT_FOUND", "message": "Missing"}}


def test_validation_failed_payload():
    exc = ValidationFailed("Bad amount", details={"amount": "0"})
    assert exc.status_code == 422
    assert exc.detail["error"]["code"] == "VALIDATION_ERROR"
    assert exc.detail["error"]["details"] == {"amount": "0"}


def test_error_module_imports_without_deprecation_warnings():
    spec = importlib.util.spec_from_file_location("freelancehub_errors_copy", Path(errors.__file__))
    module = importlib.util.module_from_spec(spec)
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        spec.loader.exec_module(module)
    assert [w for w in caught if issubclass(w.category, DeprecationWarning)] == []
    assert module.ValidationFailed.status_code == 422
