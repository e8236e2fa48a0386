"""Call-site request builders for user-configured custom services."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Protocol, Sequence

from ..conversations.message_model import ChatMessage
from ..services.credentials import CredentialStore
from .assembler import RequestDescriptor, assemble
from .infill import InfillRequestDetails
from .placeholders import OPENAI_MESSAGES, OPENAI_PREFIX, OPENAI_SUFFIX, PROMPT, substitute
from .templates import RequestTemplate, TemplateKind

__all__ = ["CustomServiceRequestBuilder", "TemplateSource"]

_INFILL_STOP = "\n"
_PROMPT_SEPARATOR = "\n\n"


class TemplateSource(Protocol):
    """Anything able to hand out a template snapshot per request kind."""

    def template_for(self, kind: TemplateKind) -> RequestTemplate:
        ...


class CustomServiceRequestBuilder:
    """Builds outbound requests for each custom-service call site.

    The builder only keeps a reference to the credential store; every call
    reads a fresh template snapshot from *settings* and returns an independent
    :class:`RequestDescriptor`.
    """

    def __init__(self, credentials: CredentialStore | None = None) -> None:
        self._credentials = credentials

    def build_completion_request(self, settings: TemplateSource, messages: Sequence[str]) -> RequestDescriptor:
        """Free-form chat: plain-text turns go into ``$OPENAI_MESSAGES``."""

        template = settings.template_for(TemplateKind.FREE_CHAT)
        body = substitute(template.body_copy(), OPENAI_MESSAGES, [str(turn) for turn in messages])
        return self._build(template, body, streaming=True)

    def build_infill_request(self, settings: TemplateSource, details: InfillRequestDetails) -> RequestDescriptor:
        """Code infill: fills prefix/suffix and limits the completion to one line."""

        template = settings.template_for(TemplateKind.INFILL)
        body = substitute(template.body_copy(), OPENAI_PREFIX, details.prefix)
        body = substitute(body, OPENAI_SUFFIX, details.suffix)
        body["stop"] = _INFILL_STOP
        return self._build(template, body, streaming=True)

    def build_chat_completion_request(
        self,
        settings: TemplateSource,
        messages: Iterable[ChatMessage | Mapping[str, Any]],
    ) -> RequestDescriptor:
        template = settings.template_for(TemplateKind.CHAT_COMPLETION)
        body = _fill_messages(template, messages)
        return self._build(template, body, streaming=True)

    def build_lookup_completion_request(
        self,
        settings: TemplateSource,
        messages: Iterable[ChatMessage | Mapping[str, Any]],
    ) -> RequestDescriptor:
        """Same as chat completion, but the whole answer is requested at once."""

        template = settings.template_for(TemplateKind.CHAT_COMPLETION)
        body = _fill_messages(template, messages)
        return self._build(template, body, streaming=False)

    def build_basic_completion_request(
        self,
        settings: TemplateSource,
        system_prompt: str,
        user_prompt: str,
        *,
        stream: bool = True,
    ) -> RequestDescriptor:
        messages = [ChatMessage("system", system_prompt), ChatMessage("user", user_prompt)]
        template = settings.template_for(TemplateKind.CHAT_COMPLETION)
        body = _fill_messages(template, messages)
        return self._build(template, body, streaming=stream)

    def _build(self, template: RequestTemplate, body: Mapping[str, Any], *, streaming: bool) -> RequestDescriptor:
        return assemble(template.url, template.headers, body, streaming, self._credentials)


def _fill_messages(
    template: RequestTemplate,
    messages: Iterable[ChatMessage | Mapping[str, Any]],
) -> Dict[str, Any]:
    payloads = _message_payloads(messages)
    body = substitute(template.body_copy(), OPENAI_MESSAGES, payloads)
    # Prompt-only services get the turns flattened into one string.
    return substitute(body, PROMPT, _PROMPT_SEPARATOR.join(str(item.get("content") or "") for item in payloads))


def _message_payloads(messages: Iterable[ChatMessage | Mapping[str, Any]]) -> List[Dict[str, Any]]:
    payloads: List[Dict[str, Any]] = []
    for message in messages:
        if isinstance(message, ChatMessage):
            payloads.append(dict(message.to_param()))
        else:
            payloads.append(dict(ChatMessage.from_mapping(message).to_param()))
    return payloads
