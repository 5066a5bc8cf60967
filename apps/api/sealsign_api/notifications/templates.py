"""E-mail templates for signer and requester notices."""

from jinja2 import DictLoader, Environment, StrictUndefined, select_autoescape

SIGNING_INVITE = "signing_invite"
COMPLETION_REQUESTER = "completion_requester"
COMPLETION_SIGNER = "completion_signer"
DECLINE_REQUESTER = "decline_requester"

_SUBJECTS = {
    SIGNING_INVITE: "Signature requested: {{ document_title }}",
    COMPLETION_REQUESTER: "Document signed: {{ document_title }}",
    COMPLETION_SIGNER: "You signed: {{ document_title }}",
    DECLINE_REQUESTER: "Signature declined: {{ document_title }}",
}

_BODIES = {
    SIGNING_INVITE: """<p>Hello,</p>
<p>You have been asked to sign <strong>{{ document_title }}</strong>.</p>
{% if message %}<blockquote>{{ message }}</blockquote>{% endif %}
<p><a href="{{ signing_url }}">Review and sign the document</a></p>
{% if expires_on %}<p>This link expires on {{ expires_on }} (UTC).</p>{% else %}<p>This link expires in {{ expires_in_days }} days.</p>{% endif %}
""",
    COMPLETION_REQUESTER: """<p>Hello,</p>
<p><strong>{{ signer_email }}</strong> signed <strong>{{ document_title }}</strong> on {{ signed_at }} UTC.</p>
<p>The sealed copy is available from your documents.</p>
""",
    COMPLETION_SIGNER: """<p>Hello,</p>
<p>Thank you for signing <strong>{{ document_title }}</strong> on {{ signed_at }} UTC.</p>
""",
    DECLINE_REQUESTER: """<p>Hello,</p>
<p><strong>{{ signer_email }}</strong> declined to sign <strong>{{ document_title }}</strong>.</p>
{% if reason %}<p>Reason: {{ reason }}</p>{% endif %}
""",
}

_env = Environment(
    loader=DictLoader({**{f"{k}.subject": v for k, v in _SUBJECTS.items()}, **{f"{k}.html": v for k, v in _BODIES.items()}}),
    autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=False),
    undefined=StrictUndefined,
)


def render(kind: str, **context) -> tuple[str, str]:
    """Render ``(subject, html_body)`` for a notice kind."""
    subject = _env.get_template(f"{kind}.subject").render(**context).strip()
    body = _env.get_template(f"{kind}.html").render(**context)
    return subject, body
