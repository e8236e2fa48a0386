"""Request templating engine: placeholders, assembly and call-site builders."""

from .assembler import RequestDescriptor, assemble
from .builders import CustomServiceRequestBuilder, TemplateSource
from .infill import InfillRequestDetails
from .placeholders import (
    CUSTOM_SERVICE_API_KEY,
    OPENAI_MESSAGES,
    OPENAI_PREFIX,
    OPENAI_SUFFIX,
    PROMPT,
    substitute,
)
from .templates import RequestTemplate, TemplateKind

__all__ = [
    "CUSTOM_SERVICE_API_KEY",
    "OPENAI_MESSAGES",
    "OPENAI_PREFIX",
    "OPENAI_SUFFIX",
    "PROMPT",
    "CustomServiceRequestBuilder",
    "InfillRequestDetails",
    "RequestDescriptor",
    "RequestTemplate",
    "TemplateKind",
    "TemplateSource",
    "assemble",
    "substitute",
]
