"""Markup sanitization for user-supplied text."""

import html
from typing import Annotated

from pydantic import AfterValidator


def escape_markup(text: str) -> str:
    """Escape HTML so stored text renders as plain text"""
    if not text:
        return text
    return html.escape(text, quote=False)


# String field that is stored with its markup escaped
SafeStr = Annotated[str, AfterValidator(escape_markup)]
