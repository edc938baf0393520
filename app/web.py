"""HTML rendering for the login and registration forms."""

from __future__ import annotations

from dataclasses import dataclass
from html import escape
from textwrap import dedent
from typing import Mapping, Sequence

from .config import Settings


FORM_TEMPLATE = dedent(
    """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>__APP_NAME__ · __PAGE_TITLE__</title>
    <style>
        body {
            margin: 0;
            font-family: 'Segoe UI', system-ui, -apple-system, sans-serif;
            background: #101010;
            color: #f5f5f5;
        }
        main {
            max-width: 420px;
            margin: 0 auto;
            padding: 3rem 1.5rem;
        }
        label {
            display: block;
            margin-top: 1rem;
            color: #a6a6a6;
        }
        input {
            width: 100%;
            padding: 0.6rem;
            margin-top: 0.35rem;
            border-radius: 8px;
            border: 1px solid #2b2b2b;
            background: #1f1f1f;
            color: inherit;
        }
        button {
            margin-top: 1.5rem;
            padding: 0.7rem 1.4rem;
            border: 0;
            border-radius: 999px;
            background: #f0f0f0;
            color: #050505;
            font-weight: 600;
        }
        .message {
            padding: 0.75rem 1rem;
            border-radius: 8px;
            background: #3a1414;
        }
        .field-error {
            color: #ff8a8a;
            font-size: 0.85rem;
        }
    </style>
</head>
<body>
    <main>
        <h1>__PAGE_TITLE__</h1>
        __MESSAGE__
        <form method="post" action="__ACTION__">
__FIELDS__
            <button type="submit">__SUBMIT__</button>
        </form>
    </main>
</body>
</html>
"""
)


@dataclass(frozen=True, slots=True)
class FormField:
    name: str
    label: str
    input_type: str = "text"


LOGIN_FIELDS: tuple[FormField, ...] = (
    FormField("username", "User Name"),
    FormField("password", "Password", "password"),
)

REGISTRATION_FIELDS: tuple[FormField, ...] = (
    FormField("username", "User Name"),
    FormField("password", "Password", "password"),
    FormField("password_confirmation", "Verify Password", "password"),
    FormField("first_name", "First Name"),
    FormField("last_name", "Last Name"),
    FormField("email", "Email", "email"),
    FormField("credit_card", "Credit Card"),
)


def render_form_page(
    settings: Settings,
    *,
    page_title: str,
    action: str,
    fields: Sequence[FormField],
    submit_label: str,
    message: str = "",
    values: Mapping[str, str] | None = None,
    errors: Mapping[str, str] | None = None,
) -> str:
    """Render a form page; password inputs are never echoed back."""

    values = values or {}
    errors = errors or {}
    rendered_fields: list[str] = []
    for field in fields:
        value = "" if field.input_type == "password" else values.get(field.name, "")
        rendered_fields.append(
            f'            <label for="{field.name}">{escape(field.label)}</label>\n'
            f'            <input id="{field.name}" name="{field.name}" '
            f'type="{field.input_type}" value="{escape(str(value))}" />'
        )
        if field.name in errors:
            rendered_fields.append(
                f'            <div class="field-error">{escape(errors[field.name])}</div>'
            )

    message_html = f'<p class="message">{escape(message)}</p>' if message else ""
    return (
        FORM_TEMPLATE.replace("__APP_NAME__", escape(settings.app_name))
        .replace("__PAGE_TITLE__", escape(page_title))
        .replace("__MESSAGE__", message_html)
        .replace("__ACTION__", escape(action))
        .replace("__FIELDS__", "\n".join(rendered_fields))
        .replace("__SUBMIT__", escape(submit_label))
    )


def render_login_page(settings: Settings, *, message: str = "", username: str = "") -> str:
    return render_form_page(
        settings,
        page_title="Login",
        action="/login",
        fields=LOGIN_FIELDS,
        submit_label="Login",
        message=message,
        values={"username": username},
    )


def render_registration_page(
    settings: Settings,
    *,
    message: str = "",
    values: Mapping[str, str] | None = None,
    errors: Mapping[str, str] | None = None,
) -> str:
    return render_form_page(
        settings,
        page_title="Register",
        action="/register",
        fields=REGISTRATION_FIELDS,
        submit_label="Register",
        message=message,
        values=values,
        errors=errors,
    )
