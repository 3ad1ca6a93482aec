"""Built-in email templates.

Each template is a (subject, html_body, text_body) triple of Jinja2 strings.
"""

from typing import NamedTuple


class EmailTemplate(NamedTuple):
    subject: str
    html_body: str
    text_body: str


OTP_TEMPLATE = EmailTemplate(
    subject="Your {{ app_name }} login code",
    html_body="""
<p>Hello {{ name }},</p>
<p>Your one-time login code is:</p>
<p style="font-size: 24px; font-weight: bold; letter-spacing: 4px;">{{ code }}</p>
<p>The code expires in {{ expires_in_minutes }} minutes. If you did not try to sign in, you can ignore this email.</p>
<p>The {{ app_name }} Team</p>
""",
    text_body="""
Hello {{ name }},

Your one-time login code is: {{ code }}

The code expires in {{ expires_in_minutes }} minutes. If you did not try to sign in, you can ignore this email.

The {{ app_name }} Team
""",
)

PASSWORD_CHANGED_TEMPLATE = EmailTemplate(
    subject="Your {{ app_name }} password was changed",
    html_body="""
<p>Hello {{ name }},</p>
<p>The password for your account was changed on {{ changed_at }}.</p>
<p>If you did not make this change, contact support immediately.</p>
<p>The {{ app_name }} Team</p>
""",
    text_body="""
Hello {{ name }},

The password for your account was changed on {{ changed_at }}.

If you did not make this change, contact support immediately.

The {{ app_name }} Team
""",
)
