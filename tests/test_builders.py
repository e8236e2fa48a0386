"""Tests for the call-site request builders."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from customservice.completions.builders import CustomServiceRequestBuilder
from customservice.completions.infill import InfillRequestDetails
from customservice.completions.templates import RequestTemplate, TemplateKind
from customservice.conversations.message_model import ChatMessage
from customservice.services.credentials import CredentialKey, InMemoryCredentialStore
from customservice.services.settings import CustomServiceSettings


def _settings() -> CustomServiceSettings:
    return CustomServiceSettings(
        completion=RequestTemplate(
            url=" https://example.com/v1/completions ",
            headers={"Authorization": "Bearer $CUSTOM_SERVICE_API_KEY"},
            body={
                "stream": True,
                "prompt": "$OPENAI_PREFIX",
                "suffix": " $OPENAI_SUFFIX",
                "stop": ["<EOT>"],
                "max_tokens": 24,
            },
        ),
        chat_completion=RequestTemplate(
            url="https://example.com/v1/chat/completions",
            headers={"Authorization": "Bearer $CUSTOM_SERVICE_API_KEY", "X-Tag": "editor"},
            body={"stream": True, "model": "gpt-test", "messages": "$OPENAI_MESSAGES"},
        ),
    )


@pytest.fixture
def builder() -> CustomServiceRequestBuilder:
    return CustomServiceRequestBuilder(InMemoryCredentialStore({CredentialKey.CUSTOM_SERVICE_API_KEY: "secret-key"}))


def test_free_form_chat_fills_plain_turns(builder: CustomServiceRequestBuilder) -> None:
    descriptor = builder.build_completion_request(_settings(), ["hello", "hi there", "how are you?"])

    assert descriptor.url == "https://example.com/v1/chat/completions"
    assert descriptor.json() == {
        "stream": True,
        "model": "gpt-test",
        "messages": ["hello", "hi there", "how are you?"],
    }
    assert descriptor.headers["Authorization"] == "Bearer secret-key"


def test_infill_fills_prefix_suffix_and_forces_stop(builder: CustomServiceRequestBuilder) -> None:
    descriptor = builder.build_infill_request(_settings(), InfillRequestDetails("def add(a, b):\n    ", "\n"))

    body = descriptor.json()
    assert descriptor.url == "https://example.com/v1/completions"
    assert body["prompt"] == "def add(a, b):\n    "
    assert body["suffix"] == "\n"
    assert body["stop"] == "\n"
    assert body["stream"] is True
    assert list(body) == ["stream", "prompt", "suffix", "stop", "max_tokens"]


def test_infill_adds_stop_when_template_has_none(builder: CustomServiceRequestBuilder) -> None:
    settings = _settings()
    settings.completion = RequestTemplate(url="https://x", body={"prompt": "$OPENAI_PREFIX"})

    body = builder.build_infill_request(settings, InfillRequestDetails("x = ")).json()

    assert body == {"prompt": "x = ", "stop": "\n"}


def test_chat_completion_fills_role_tagged_messages(builder: CustomServiceRequestBuilder) -> None:
    messages = [ChatMessage("system", "Be brief"), {"role": "user", "content": "Write a test"}]

    descriptor = builder.build_chat_completion_request(_settings(), messages)

    assert descriptor.json()["messages"] == [
        {"role": "system", "content": "Be brief"},
        {"role": "user", "content": "Write a test"},
    ]
    assert descriptor.json()["stream"] is True
    assert list(descriptor.headers) == ["Authorization", "X-Tag"]


def test_lookup_request_disables_streaming(builder: CustomServiceRequestBuilder) -> None:
    descriptor = builder.build_lookup_completion_request(_settings(), [ChatMessage("user", "name this file")])

    body = descriptor.json()
    assert body["stream"] is False
    assert body["messages"] == [{"role": "user", "content": "name this file"}]


def test_basic_completion_builds_system_and_user_messages(builder: CustomServiceRequestBuilder) -> None:
    descriptor = builder.build_basic_completion_request(_settings(), "You are terse", "Summarize", stream=False)

    body = descriptor.json()
    assert body["messages"] == [
        {"role": "system", "content": "You are terse"},
        {"role": "user", "content": "Summarize"},
    ]
    assert body["stream"] is False


def test_builders_never_mutate_template(builder: CustomServiceRequestBuilder) -> None:
    settings = _settings()
    before = settings.completion.to_dict()

    builder.build_infill_request(settings, InfillRequestDetails("a", "b"))

    assert settings.completion.to_dict() == before


def test_unknown_role_is_rejected(builder: CustomServiceRequestBuilder) -> None:
    with pytest.raises(ValueError):
        builder.build_chat_completion_request(_settings(), [{"role": "robot", "content": "beep"}])


def test_missing_placeholder_leaves_body_untouched(builder: CustomServiceRequestBuilder) -> None:
    settings = _settings()
    settings.chat_completion = RequestTemplate(url="https://x", body={"model": "m", "input": "static"})

    body = builder.build_chat_completion_request(settings, [ChatMessage("user", "hi")]).json()

    assert body == {"model": "m", "input": "static"}


def test_template_selection_per_kind() -> None:
    settings = _settings()

    assert settings.template_for(TemplateKind.INFILL) is settings.completion
    assert settings.template_for(TemplateKind.FREE_CHAT) is settings.chat_completion
    assert settings.template_for(TemplateKind.CHAT_COMPLETION) is settings.chat_completion


def test_concurrent_builds_are_independent(builder: CustomServiceRequestBuilder) -> None:
    settings = _settings()

    def _build(index: int) -> list:
        descriptor = builder.build_chat_completion_request(settings, [ChatMessage("user", f"q{index}")])
        return descriptor.json()["messages"]

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(_build, range(20)))

    assert results == [[{"role": "user", "content": f"q{index}"}] for index in range(20)]


def test_infill_details_from_document_splits_at_offset() -> None:
    details = InfillRequestDetails.from_document("abcdef", 2)

    assert details == InfillRequestDetails("ab", "cdef")


def test_infill_details_from_document_limits_context() -> None:
    details = InfillRequestDetails.from_document("0123456789", 5, max_chars=2)

    assert details == InfillRequestDetails("34", "56")


def _prompt_only_settings() -> CustomServiceSettings:
    return CustomServiceSettings(
        chat_completion=RequestTemplate(
            url="https://example.com/v1/generate",
            body={"stream": True, "prompt": " $PROMPT ", "system": "Answer after $PROMPT"},
        ),
    )


def test_chat_completion_flattens_turns_into_prompt(builder: CustomServiceRequestBuilder) -> None:
    messages = [ChatMessage("system", "Be brief."), ChatMessage("user", "What is 2 + 2?")]

    descriptor = builder.build_chat_completion_request(_prompt_only_settings(), messages)

    assert descriptor.json() == {
        "stream": True,
        "prompt": "Be brief.\n\nWhat is 2 + 2?",
        "system": "Answer after $PROMPT",
    }


def test_lookup_and_basic_requests_fill_prompt(builder: CustomServiceRequestBuilder) -> None:
    lookup = builder.build_lookup_completion_request(_prompt_only_settings(), [{"role": "user", "content": "name it"}])
    basic = builder.build_basic_completion_request(_prompt_only_settings(), "sys", "usr", stream=False)

    assert lookup.json()["prompt"] == "name it"
    assert lookup.json()["stream"] is False
    assert basic.json()["prompt"] == "sys\n\nusr"
