"""Tests for parsing and normalizing model replies."""

import json

import pytest

from conftest import VALID_REPLY
from testgen.agents.response_parser_agent import (
    ResponseParserAgent,
    format_bullet_list,
    format_numbered_list,
)
from testgen.exceptions import MalformedResponseError


def _reply(*cases):
    return json.dumps({"testCases": list(cases)})


def _serialize(result):
    return json.dumps({"testCases": [c.model_dump(by_alias=True) for c in result.all_test_cases]})


def test_parses_prose_and_fenced_reply():
    result = ResponseParserAgent().parse(VALID_REPLY)

    assert len(result.all_test_cases) == 2
    first, second = result.all_test_cases
    assert first.test_steps == "1. Open the Login Page\n2. Enter email and password\n3. Click Submit"
    assert first.test_data == "• Email: user1@test.com\n• Password: SecurePass123"
    assert first.expected_results == "• Dashboard is displayed\n• Welcome message shows the user name"
    assert second.type == "End-to-End"
    assert second.test_steps == "1. Open the Login Page\n2. Sign in\n3. Pay for the order"


def test_extracts_outermost_object_from_trailing_prose():
    raw = 'Sure! {"testCases": [{"title": "Check totals", "type": "Integration"}]} Hope this helps.'

    result = ResponseParserAgent().parse(raw)

    assert result.all_test_cases[0].title == "Check totals"
    assert result.integration == [result.all_test_cases[0].summary()]


def test_categorized_views():
    result = ResponseParserAgent().parse(VALID_REPLY)

    assert len(result.functional) == 1
    assert len(result.end_to_end) == 1
    assert result.functional[0].startswith("Verify login with valid credentials: 1. Open the Login Page")
    assert result.integration == []
    assert result.ui == []


def test_parser_is_idempotent():
    parser = ResponseParserAgent()
    first = parser.parse(VALID_REPLY)

    second = parser.parse(_serialize(first))

    assert second.model_dump() == first.model_dump()


def test_defaults_for_missing_fields():
    result = ResponseParserAgent().parse(_reply({"title": ""}))

    record = result.all_test_cases[0]
    assert record.title == "Untitled Test Case"
    assert record.type == "Functional"
    assert record.preconditions == "Standard system access required"
    assert record.test_steps == "1. Test steps not specified"
    assert record.test_data == "• Standard test data"
    assert record.expected_results == "• Test should complete successfully"


def test_description_used_when_steps_missing():
    result = ResponseParserAgent().parse(_reply({"description": "Open page; Press Save"}))

    assert result.all_test_cases[0].test_steps == "1. Open page\n2. Press Save"


def test_list_valued_fields():
    case = {
        "testSteps": ["Open the cart", "Press Checkout"],
        "testData": ["Coupon SAVE10", "Qty 2"],
        "expectedResults": ["Discount applied"],
    }

    record = ResponseParserAgent().parse(_reply(case)).all_test_cases[0]

    assert record.test_steps == "1. Open the cart\n2. Press Checkout"
    assert record.test_data == "• Coupon SAVE10\n• Qty 2"
    assert record.expected_results == "• Discount applied"


def test_type_normalization_and_unknown_types():
    cases = [
        {"title": "A", "type": "e2e"},
        {"title": "B", "type": "ui"},
        {"title": "C", "type": "Performance"},
        {"title": "D", "type": "FUNCTIONAL"},
    ]

    result = ResponseParserAgent().parse(_reply(*cases))

    assert [c.type for c in result.all_test_cases] == ["End-to-End", "UI", "Performance", "Functional"]
    assert len(result.end_to_end) == 1
    assert len(result.ui) == 1
    assert len(result.functional) == 2


def test_trailing_commas_are_repaired():
    raw = '{"testCases": [{"title": "Repaired", "type": "Functional",},]}'

    result = ResponseParserAgent().parse(raw)

    assert result.all_test_cases[0].title == "Repaired"


def test_non_object_entries_are_skipped():
    result = ResponseParserAgent().parse(_reply("junk", {"title": "Kept"}))

    assert [c.title for c in result.all_test_cases] == ["Kept"]


@pytest.mark.parametrize("raw", [
    "I could not generate test cases for these screenshots.",
    '{"cases": []}',
    '{"testCases": "none"}',
    '{"testCases": []}',
    '{"testCases": [1, 2]}',
    '{"testCases": [{"title": "x"}',
])
def test_malformed_replies(raw):
    with pytest.raises(MalformedResponseError) as exc_info:
        ResponseParserAgent().parse(raw)

    assert exc_info.value.action == "retry_now"
    assert exc_info.value.raw_excerpt


def test_raw_excerpt_is_truncated():
    raw = "no json here " * 200

    with pytest.raises(MalformedResponseError) as exc_info:
        ResponseParserAgent().parse(raw)

    assert len(exc_info.value.raw_excerpt) <= 500


def test_list_formatters_leave_formatted_text_alone():
    assert format_numbered_list("1. One\n2. Two") == "1. One\n2. Two"
    assert format_bullet_list("- a\n- b") == "- a\n- b"
    assert format_bullet_list("• a\n• b") == "• a\n• b"
    assert format_numbered_list("2) Second, 3) Third") == "1. Second\n2. Third"


def test_mixed_bullets_are_left_alone():
    """One marked line is enough to keep the model's own list formatting."""
    assert format_bullet_list("- a\nb") == "- a\nb"
    assert format_bullet_list("Total shown\n* Tax shown") == "Total shown\n* Tax shown"

    record = ResponseParserAgent().normalize_record({"title": "Mixed", "testData": "- a\nb"})

    assert record.test_data == "- a\nb"


def test_dash_prefixed_items_get_a_single_bullet():
    assert format_bullet_list("Name: Ann, - Role: admin") == "• Name: Ann\n• Role: admin"
    assert format_bullet_list("Balance -5, Limit 10") == "• Balance -5\n• Limit 10"


def test_decimal_at_item_start_is_kept():
    assert format_numbered_list("Open page, 2.50 dollars") == "1. Open page\n2. 2.50 dollars"
    assert format_numbered_list("Open cart, 3. Pay") == "1. Open cart\n2. Pay"


@pytest.mark.asyncio
async def test_execute_parses_raw_response():
    outcome = await ResponseParserAgent().execute({"raw_response": VALID_REPLY})

    assert len(outcome["result"].all_test_cases) == 2


@pytest.mark.asyncio
async def test_execute_without_reply_is_malformed():
    with pytest.raises(MalformedResponseError):
        await ResponseParserAgent().execute({})
