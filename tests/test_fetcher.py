import json

import pytest

from grantbridge.core.errors import ResponseParseError, UpstreamError
from grantbridge.pipeline.fetcher import DEFAULT_PROFILE, fetch_grants, parse_grants_reply, search_grants
from grantbridge.pipeline.prompts import GRANTS_RESPONSE_FORMAT, SYSTEM_PROMPT

from fakes import FakeSonarClient, grants_reply


def test_fetch_grants_uses_sync_model_and_profile():
    client = FakeSonarClient([grants_reply(3)])
    records = fetch_grants(client)

    assert len(records) == 3
    call = client.calls[0]
    assert call["model"] == "sonar"
    assert call["max_tokens"] == 2000
    assert call["temperature"] == 0.2
    assert call["response_format"] == GRANTS_RESPONSE_FORMAT
    assert call["messages"][0] == {"role": "system", "content": SYSTEM_PROMPT}
    prompt = call["messages"][1]["content"]
    assert "20-year-old" in prompt
    assert "Computer Science" in prompt
    assert "YYYY-MM-DD" in prompt


def test_search_grants_uses_live_model_and_window():
    client = FakeSonarClient([grants_reply(1)])
    search_grants(client, DEFAULT_PROFILE)

    call = client.calls[0]
    assert call["model"] == "sonar-pro"
    assert "next 3 years" in call["messages"][1]["content"]


@pytest.mark.parametrize(
    "content, message",
    [
        ("", "Sonar API returned empty response. Please try again later."),
        ("   ", "Sonar API returned empty response. Please try again later."),
        ("Here are some grants!", "Failed to parse grants data from Sonar."),
        ('{"title": "x"}', "Invalid grants data format from Sonar."),
    ],
)
def test_parse_grants_reply_errors(content, message):
    with pytest.raises(ResponseParseError) as exc_info:
        parse_grants_reply(content)
    assert exc_info.value.message == message


def test_parse_grants_reply_keeps_one_record_per_item():
    records = parse_grants_reply(json.dumps([{"title": "A"}, "junk", None]))
    assert records == [{"title": "A"}, {}, {}]


def test_upstream_errors_propagate():
    client = FakeSonarClient(error=UpstreamError("Sonar API error: 503"))
    with pytest.raises(UpstreamError):
        fetch_grants(client)
