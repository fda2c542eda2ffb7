from diffscope.modules.core.errors import (
    ERR_BUDGET,
    ERR_NOT_FOUND,
    ERR_PARSE,
    make_budget_warning,
    make_error,
    make_not_found_error,
    make_warning,
)


def test_make_error_shape() -> None:
    assert make_error(ERR_PARSE, "bad", file="a.ts") == {
        "error": True,
        "code": "DIFFSCOPE_ERR_PARSE",
        "message": "bad",
        "details": {"file": "a.ts"},
    }


def test_warnings_are_not_errors() -> None:
    assert make_warning(ERR_PARSE, "soft")["error"] is False


def test_helpers() -> None:
    missing = make_not_found_error("file", "x.diff")
    assert missing["code"] == ERR_NOT_FOUND
    assert missing["message"] == "file 'x.diff' not found"
    budget = make_budget_warning("a.ts", 9000, 8192, 2000)
    assert budget["code"] == ERR_BUDGET
    assert budget["details"]["prompt_tokens"] == 9000
