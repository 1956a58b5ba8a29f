"""Forma - declarative form building and submission processing."""

from forma.core import Form, MarkupBuffer
from forma.csrf import CsrfProvider, SignedNonceProvider
from forma.fields import FieldRegistry, field_type, registry
from forma.hooks import HookRegistry, hooks
from forma.model import FormConfig, FormIdentity, Section
from forma.notices import OutcomeKind, SubmissionOutcome, render_notice
from forma.request import RequestContext
from forma.submission import SubmissionProcessor, SubmissionResult, SubmissionState

__all__ = [
    "CsrfProvider",
    "FieldRegistry",
    "Form",
    "FormConfig",
    "FormIdentity",
    "HookRegistry",
    "MarkupBuffer",
    "OutcomeKind",
    "RequestContext",
    "Section",
    "SignedNonceProvider",
    "SubmissionOutcome",
    "SubmissionProcessor",
    "SubmissionResult",
    "SubmissionState",
    "field_type",
    "hooks",
    "registry",
    "render_notice",
]
